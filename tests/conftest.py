"""Shared test fixtures for entkv tests."""

from __future__ import annotations

import io
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import pytest
from botocore.exceptions import ClientError
from pydantic import create_model

from entkv import EntityModel, EntkvConfig, MemoryStore, generate
from entkv.store_s3 import S3Store
from entkv.store_sqlite import SqliteStore

# --- Test entity models ---

# Built with create_model: a field literally named "str" would shadow the
# builtin inside a class body.
E1 = create_model(
    "E1",
    __base__=EntityModel,
    str=(str, ...),
    optStr=(Optional[str], None),
)


class Todo(EntityModel):
    title: str
    done: bool = False
    priority: int = 0
    tags: list[str] = []


class Color(str, Enum):
    RED = "red"
    GREEN = "green"


class Event(EntityModel):
    when: datetime
    color: Color
    ref: Optional[uuid.UUID] = None


# --- Fake S3 ---


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls S3Store makes."""

    def __init__(self, page_size: int = 2) -> None:
        self.objects: dict[str, bytes] = {}
        self.page_size = page_size

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        if Key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "not found"}}, "GetObject"
            )
        return {"Body": io.BytesIO(self.objects[Key]), "ETag": '"etag"'}

    def put_object(
        self, *, Bucket: str, Key: str, Body: bytes, ContentType: str | None = None
    ) -> dict[str, Any]:
        self.objects[Key] = Body
        return {"ETag": '"etag"'}

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.objects.pop(Key, None)
        return {}

    def list_objects_v2(
        self,
        *,
        Bucket: str,
        Prefix: str = "",
        StartAfter: str | None = None,
        ContinuationToken: str | None = None,
    ) -> dict[str, Any]:
        keys = sorted(
            k
            for k in self.objects
            if k.startswith(Prefix) and (StartAfter is None or k > StartAfter)
        )
        offset = int(ContinuationToken) if ContinuationToken else 0
        page = keys[offset : offset + self.page_size]
        resp: dict[str, Any] = {
            "Contents": [{"Key": k} for k in page],
            "IsTruncated": offset + self.page_size < len(keys),
        }
        if resp["IsTruncated"]:
            resp["NextContinuationToken"] = str(offset + self.page_size)
        return resp


# --- Fixtures ---


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def s3_client():
    return FakeS3Client()


def _open(backend: str, tmp_db: str, s3_client: FakeS3Client) -> Any:
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SqliteStore(tmp_db)
    return S3Store(
        bucket="bucket",
        prefix="root",
        storage_uri="s3://bucket/root",
        config=EntkvConfig(),
        client=s3_client,
    )


@pytest.fixture(params=["memory", "sqlite", "s3"])
def store(request, tmp_db, s3_client):
    """One store per backend; generated operations must behave identically."""
    s = _open(request.param, tmp_db, s3_client)
    yield s
    s.close()


@pytest.fixture
def e1():
    return generate("e1", E1)


def write_raw(store: Any, key: str, value: Any) -> None:
    """Put a value without validation, as an external writer would."""
    with store.transaction() as tx:
        tx.put(key, value)


def read_raw(store: Any, key: str) -> Any:
    with store.transaction() as tx:
        return tx.get(key)
