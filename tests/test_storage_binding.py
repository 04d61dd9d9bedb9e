"""Tests for storage target parsing and backend selection."""

from __future__ import annotations

import pytest

from entkv import EntkvConfig, MemoryStore, StorageBackendError
from entkv.store import open_store, parse_storage_target
from entkv.store_sqlite import SqliteStore


def test_parse_storage_target_defaults_to_sqlite() -> None:
    target = parse_storage_target()
    assert target.backend == "sqlite"
    assert target.db_path == "entkv.db"


def test_parse_storage_target_sqlite_uri() -> None:
    target = parse_storage_target(storage_uri="sqlite:///tmp/example.db")
    assert target.backend == "sqlite"
    assert target.db_path == "/tmp/example.db"


def test_parse_storage_target_sqlite_memory_uri() -> None:
    target = parse_storage_target(storage_uri="sqlite:///:memory:")
    assert target.backend == "sqlite"
    assert target.db_path == ":memory:"


def test_parse_storage_target_conflicting_sqlite_raises() -> None:
    with pytest.raises(StorageBackendError):
        parse_storage_target(db_path="a.db", storage_uri="sqlite:///b.db")


def test_parse_storage_target_memory() -> None:
    target = parse_storage_target(storage_uri="memory://")
    assert target.backend == "memory"


def test_parse_storage_target_s3() -> None:
    target = parse_storage_target(storage_uri="s3://bucket/some/prefix/")
    assert target.backend == "s3"
    assert target.bucket == "bucket"
    assert target.prefix == "some/prefix"


def test_parse_storage_target_s3_rejects_db_path() -> None:
    with pytest.raises(StorageBackendError, match="db_path cannot be provided"):
        parse_storage_target(db_path="a.db", storage_uri="s3://bucket/prefix")


def test_parse_storage_target_s3_requires_bucket() -> None:
    with pytest.raises(StorageBackendError, match="Invalid s3 URI"):
        parse_storage_target(storage_uri="s3:///prefix")


def test_parse_storage_target_unknown_scheme() -> None:
    with pytest.raises(StorageBackendError, match="Unsupported storage URI scheme"):
        parse_storage_target(storage_uri="redis://localhost")


def test_open_store_sqlite(tmp_path) -> None:
    store = open_store(str(tmp_path / "entkv.db"), config=EntkvConfig(sqlite_timeout_s=1.0))
    try:
        assert isinstance(store, SqliteStore)
        assert store.storage_info()["backend"] == "sqlite"
        assert store.storage_info()["key_count"] == 0
    finally:
        store.close()


def test_open_store_sqlite_memory_uri() -> None:
    store = open_store(storage_uri="sqlite:///:memory:")
    try:
        with store.transaction() as tx:
            tx.put("a/1", {"id": "1"})
        assert store.storage_info()["key_count"] == 1
    finally:
        store.close()


def test_open_store_memory() -> None:
    store = open_store(storage_uri="memory://")
    assert isinstance(store, MemoryStore)
    assert store.storage_info() == {"backend": "memory", "key_count": 0}
