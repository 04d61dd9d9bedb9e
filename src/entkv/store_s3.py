"""S3-backed ordered key-value store.

Each key maps to one JSON object under ``<bucket>/<prefix>/``. S3 lists keys in
UTF-8 binary order, which matches string ordering, so prefix scans come back
sorted. Writes are staged per transaction and flushed object by object on a
clean exit; a flush is not atomic across keys.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from entkv.config import EntkvConfig
from entkv.errors import StorageBackendError
from entkv.store import BufferedTransaction
from entkv.types import MISSING, JSONValue

logger = logging.getLogger(__name__)


def _make_client(config: EntkvConfig) -> Any:
    session = boto3.Session(region_name=config.s3_region)
    return session.client(
        "s3",
        region_name=config.s3_region,
        endpoint_url=config.s3_endpoint_url,
        config=BotoConfig(
            connect_timeout=config.s3_request_timeout_s,
            read_timeout=config.s3_request_timeout_s,
            retries={"max_attempts": config.s3_max_attempts, "mode": "standard"},
        ),
    )


class S3Transaction(BufferedTransaction):
    def __init__(self, store: S3Store) -> None:
        super().__init__()
        self._store = store

    def _base_get(self, key: str) -> JSONValue:
        return self._store._get(key)

    def _base_scan(self, prefix: str, start_key: str) -> Iterator[tuple[str, JSONValue]]:
        return self._store._scan(prefix, start_key)


class S3Store:
    """S3-backed store; one object per key."""

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str,
        storage_uri: str,
        config: EntkvConfig,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.storage_uri = storage_uri
        self._config = config
        self._s3 = client if client is not None else _make_client(config)

    # --- Key/object helpers ---

    def _k(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def _unk(self, object_key: str) -> str:
        return object_key[len(self.prefix) + 1 :] if self.prefix else object_key

    def _is_not_found(self, err: Exception) -> bool:
        if isinstance(err, ClientError):
            code = err.response.get("Error", {}).get("Code", "")
            return code in {"NoSuchKey", "404", "NotFound"}
        return False

    def _get(self, key: str) -> JSONValue:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=self._k(key))
            body = resp["Body"].read()
        except Exception as e:
            if self._is_not_found(e):
                return MISSING
            raise StorageBackendError("get_object", f"{self._k(key)}: {e}") from e
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageBackendError(
                "decode", f"Stored value at '{key}' is not valid JSON: {e}"
            ) from e

    def _put(self, key: str, value: JSONValue) -> None:
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=self._k(key),
                Body=json.dumps(value).encode("utf-8"),
                ContentType="application/json",
            )
        except ClientError as e:
            raise StorageBackendError("put_object", f"{self._k(key)}: {e}") from e

    def _delete(self, key: str) -> None:
        try:
            self._s3.delete_object(Bucket=self.bucket, Key=self._k(key))
        except ClientError as e:
            if self._is_not_found(e):
                return
            raise StorageBackendError("delete_object", f"{self._k(key)}: {e}") from e

    def _scan(self, prefix: str, start_key: str) -> Iterator[tuple[str, JSONValue]]:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Prefix": self._k(prefix)}
        if start_key != prefix:
            # StartAfter is exclusive; the start key itself is fetched directly.
            first = self._get(start_key)
            if first is not MISSING:
                yield start_key, first
            kwargs["StartAfter"] = self._k(start_key)
        while True:
            try:
                resp = self._s3.list_objects_v2(**kwargs)
            except ClientError as e:
                raise StorageBackendError("list_objects_v2", str(e)) from e
            for obj in resp.get("Contents", []):
                key = self._unk(obj["Key"])
                value = self._get(key)
                if value is not MISSING:
                    yield key, value
            if not resp.get("IsTruncated"):
                return
            kwargs["ContinuationToken"] = resp["NextContinuationToken"]

    # --- Store contract ---

    @contextmanager
    def transaction(self) -> Iterator[S3Transaction]:
        tx = S3Transaction(self)
        try:
            yield tx
        except BaseException:
            logger.debug("Discarding %d staged S3 writes", len(tx.pending_writes()))
            raise
        else:
            self._flush(tx.pending_writes())
        finally:
            tx.close()

    def _flush(self, writes: list[tuple[str, Any]]) -> None:
        for key, value in writes:
            if value is MISSING:
                self._delete(key)
            else:
                self._put(key, value)
        logger.debug("Flushed %d writes to %s", len(writes), self.storage_uri)

    def close(self) -> None:
        close = getattr(self._s3, "close", None)
        if callable(close):
            close()

    def storage_info(self) -> dict[str, Any]:
        return {
            "backend": "s3",
            "storage_uri": self.storage_uri,
            "bucket": self.bucket,
            "prefix": self.prefix,
        }
