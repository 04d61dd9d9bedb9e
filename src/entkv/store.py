"""Store contract, shared transaction machinery, and the in-memory backend.

A store hands out transactions; generated entity operations only ever see the
transaction. Every backend keeps keys in ascending lexicographic order so that
``scan`` can serve cursor pagination.
"""

from __future__ import annotations

import bisect
import copy
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

from entkv.config import EntkvConfig
from entkv.errors import StorageBackendError, TransactionClosedError
from entkv.types import MISSING, JSONValue

logger = logging.getLogger(__name__)

_DELETED = object()


@runtime_checkable
class Transaction(Protocol):
    """Ordered key-value operations inside one transaction."""

    def get(self, key: str) -> JSONValue: ...

    def put(self, key: str, value: JSONValue) -> None: ...

    def delete(self, key: str) -> None: ...

    def scan(self, prefix: str, start_key: str | None = None) -> Iterator[tuple[str, JSONValue]]: ...


@runtime_checkable
class Store(Protocol):
    """A backend that can open transactions."""

    def transaction(self) -> Any: ...

    def close(self) -> None: ...

    def storage_info(self) -> dict[str, Any]: ...


def scan_start(prefix: str, start_key: str | None) -> str:
    """Effective first key of a scan: never before ``prefix``."""
    if start_key is None or start_key < prefix:
        return prefix
    return start_key


class BufferedTransaction:
    """Transaction that stages writes in an overlay on top of a base view.

    Reads and scans see the transaction's own pending writes. Subclasses
    provide the base view and decide what happens to :meth:`pending_writes`
    when the transaction ends.
    """

    def __init__(self) -> None:
        self._writes: dict[str, Any] = {}
        self._closed = False

    # --- Base view, supplied by subclasses ---

    def _base_get(self, key: str) -> JSONValue:
        raise NotImplementedError

    def _base_scan(self, prefix: str, start_key: str) -> Iterator[tuple[str, JSONValue]]:
        raise NotImplementedError

    # --- Transaction contract ---

    def get(self, key: str) -> JSONValue:
        self._check_open()
        if key in self._writes:
            value = self._writes[key]
            return MISSING if value is _DELETED else copy.deepcopy(value)
        return self._base_get(key)

    def put(self, key: str, value: JSONValue) -> None:
        self._check_open()
        self._writes[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._check_open()
        self._writes[key] = _DELETED

    def scan(self, prefix: str, start_key: str | None = None) -> Iterator[tuple[str, JSONValue]]:
        self._check_open()
        start = scan_start(prefix, start_key)
        staged = sorted(k for k in self._writes if k.startswith(prefix) and k >= start)
        return self._merge(self._base_scan(prefix, start), staged)

    def _merge(
        self, base: Iterator[tuple[str, JSONValue]], staged: list[str]
    ) -> Iterator[tuple[str, JSONValue]]:
        i = 0
        for key, value in base:
            while i < len(staged) and staged[i] < key:
                pending = self._writes[staged[i]]
                if pending is not _DELETED:
                    yield staged[i], copy.deepcopy(pending)
                i += 1
            if i < len(staged) and staged[i] == key:
                pending = self._writes[key]
                i += 1
                if pending is not _DELETED:
                    yield key, copy.deepcopy(pending)
                continue
            yield key, value
        for key in staged[i:]:
            pending = self._writes[key]
            if pending is not _DELETED:
                yield key, copy.deepcopy(pending)

    # --- Lifecycle ---

    def pending_writes(self) -> list[tuple[str, Any]]:
        """Staged writes in key order; deletions carry :data:`MISSING`."""
        return [
            (key, MISSING if value is _DELETED else value)
            for key, value in sorted(self._writes.items())
        ]

    def close(self) -> None:
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionClosedError()


class MemoryTransaction(BufferedTransaction):
    def __init__(self, store: MemoryStore) -> None:
        super().__init__()
        self._store = store

    def _base_get(self, key: str) -> JSONValue:
        return self._store._read(key)

    def _base_scan(self, prefix: str, start_key: str) -> Iterator[tuple[str, JSONValue]]:
        return self._store._scan(prefix, start_key)


class MemoryStore:
    """In-process ordered store; writes land when a transaction exits cleanly.

    Transactions are serialized: one opened while another is active on a
    different thread waits for it to finish. Opening a second transaction on
    the thread that already holds one raises, as a nested ``BEGIN`` does on a
    SQLite connection.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._keys: list[str] = []
        self._lock = threading.Lock()
        self._tx_lock = threading.Lock()
        self._tx_owner: int | None = None

    @contextmanager
    def transaction(self) -> Iterator[MemoryTransaction]:
        if self._tx_owner == threading.get_ident():
            raise StorageBackendError(
                "begin_transaction", "a transaction is already open on this thread"
            )
        with self._tx_lock:
            self._tx_owner = threading.get_ident()
            tx = MemoryTransaction(self)
            try:
                yield tx
            except BaseException:
                logger.debug("Discarding %d staged writes", len(tx.pending_writes()))
                raise
            else:
                self._apply(tx.pending_writes())
            finally:
                tx.close()
                self._tx_owner = None

    def _apply(self, writes: list[tuple[str, Any]]) -> None:
        with self._lock:
            for key, value in writes:
                if value is MISSING:
                    if self._data.pop(key, MISSING) is not MISSING:
                        self._keys.pop(bisect.bisect_left(self._keys, key))
                    continue
                if key not in self._data:
                    bisect.insort(self._keys, key)
                self._data[key] = value
        logger.debug("Applied %d writes to memory store", len(writes))

    def _read(self, key: str) -> JSONValue:
        with self._lock:
            value = self._data.get(key, MISSING)
        return MISSING if value is MISSING else copy.deepcopy(value)

    def _scan(self, prefix: str, start_key: str) -> Iterator[tuple[str, JSONValue]]:
        with self._lock:
            idx = bisect.bisect_left(self._keys, start_key)
            keys = self._keys[idx:]
        for key in keys:
            if not key.startswith(prefix):
                break
            value = self._read(key)
            if value is not MISSING:
                yield key, value

    def close(self) -> None:
        with self._lock:
            self._data.clear()
            self._keys.clear()

    def storage_info(self) -> dict[str, Any]:
        return {"backend": "memory", "key_count": len(self._keys)}


@dataclass(frozen=True)
class StorageTarget:
    """Resolved storage target from a db path or a storage URI."""

    backend: str
    uri: str
    db_path: str | None = None
    bucket: str | None = None
    prefix: str | None = None


def parse_storage_target(
    db_path: str | None = None,
    storage_uri: str | None = None,
) -> StorageTarget:
    """Resolve a backend target from a SQLite path or a URI.

    Supported URIs: ``sqlite:///path``, ``sqlite:///:memory:``, ``memory://``
    and ``s3://bucket/prefix``.
    """
    if storage_uri is None and db_path is None:
        db_path = "entkv.db"

    if storage_uri is None and db_path is not None:
        return StorageTarget(backend="sqlite", uri=f"sqlite:///{db_path}", db_path=db_path)

    assert storage_uri is not None
    parsed = urlparse(storage_uri)

    if parsed.scheme == "sqlite":
        sqlite_path = parsed.path
        if parsed.netloc:
            sqlite_path = f"{parsed.netloc}{sqlite_path}"
        elif sqlite_path.startswith("//"):
            # sqlite:////abs/path -> /abs/path
            sqlite_path = sqlite_path[1:]
        if sqlite_path == "/:memory:":
            sqlite_path = ":memory:"
        if not sqlite_path:
            raise StorageBackendError("parse_storage_uri", f"Invalid sqlite URI: {storage_uri}")
        if db_path is not None and os.path.abspath(db_path) != os.path.abspath(sqlite_path):
            raise StorageBackendError(
                "parse_storage_uri",
                f"Conflicting db_path '{db_path}' and storage_uri '{storage_uri}'",
            )
        return StorageTarget(backend="sqlite", uri=storage_uri, db_path=sqlite_path)

    if parsed.scheme == "memory":
        if db_path is not None:
            raise StorageBackendError(
                "parse_storage_uri", "db_path cannot be provided for memory storage targets"
            )
        return StorageTarget(backend="memory", uri=storage_uri)

    if parsed.scheme == "s3":
        bucket = parsed.netloc
        prefix = parsed.path.lstrip("/").rstrip("/")
        if not bucket:
            raise StorageBackendError("parse_storage_uri", f"Invalid s3 URI: {storage_uri}")
        if db_path is not None:
            raise StorageBackendError(
                "parse_storage_uri",
                "db_path cannot be provided for s3 storage targets",
            )
        return StorageTarget(backend="s3", uri=storage_uri, bucket=bucket, prefix=prefix)

    raise StorageBackendError(
        "parse_storage_uri",
        f"Unsupported storage URI scheme '{parsed.scheme}' for '{storage_uri}'",
    )


def open_store(
    db_path: str | None = None,
    *,
    storage_uri: str | None = None,
    config: EntkvConfig | None = None,
) -> Any:
    """Open a store backend from a SQLite path or a storage URI."""
    cfg = config or EntkvConfig()
    target = parse_storage_target(db_path=db_path, storage_uri=storage_uri)
    if target.backend == "sqlite":
        from entkv.store_sqlite import SqliteStore

        assert target.db_path is not None
        return SqliteStore(target.db_path, timeout_s=cfg.sqlite_timeout_s)
    if target.backend == "memory":
        return MemoryStore()
    if target.backend == "s3":
        from entkv.store_s3 import S3Store

        assert target.bucket is not None
        return S3Store(
            bucket=target.bucket,
            prefix=target.prefix or "",
            storage_uri=target.uri,
            config=cfg,
        )
    raise StorageBackendError("open_store", f"Unsupported backend '{target.backend}'")


__all__ = [
    "BufferedTransaction",
    "MemoryStore",
    "MemoryTransaction",
    "Store",
    "StorageTarget",
    "Transaction",
    "open_store",
    "parse_storage_target",
    "scan_start",
]
