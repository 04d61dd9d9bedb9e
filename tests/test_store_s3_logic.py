"""Unit tests for S3 store logic against an in-memory fake client."""

from __future__ import annotations

import json

import pytest
from botocore.exceptions import ClientError

from entkv import EntkvConfig, MISSING, StorageBackendError, generate
from entkv.store_s3 import S3Store
from tests.conftest import E1, FakeS3Client


def _store(client: FakeS3Client, prefix: str = "root") -> S3Store:
    return S3Store(
        bucket="bucket",
        prefix=prefix,
        storage_uri=f"s3://bucket/{prefix}",
        config=EntkvConfig(),
        client=client,
    )


def test_objects_live_under_store_prefix(s3_client):
    store = _store(s3_client)
    with store.transaction() as tx:
        tx.put("e1/a", {"id": "a", "str": "x"})
    assert json.loads(s3_client.objects["root/e1/a"]) == {"id": "a", "str": "x"}


def test_empty_prefix_uses_bare_keys(s3_client):
    store = _store(s3_client, prefix="")
    with store.transaction() as tx:
        tx.put("e1/a", 1)
    assert list(s3_client.objects) == ["e1/a"]


def test_writes_flush_only_on_clean_exit(s3_client):
    store = _store(s3_client)
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.put("k", 1)
            assert s3_client.objects == {}
            raise RuntimeError("boom")
    assert s3_client.objects == {}


def test_delete_flushes(s3_client):
    s3_client.objects["root/k"] = b"1"
    store = _store(s3_client)
    with store.transaction() as tx:
        tx.delete("k")
    assert s3_client.objects == {}


def test_scan_follows_continuation_tokens(s3_client):
    store = _store(s3_client)
    with store.transaction() as tx:
        for i in range(7):
            tx.put(f"e1/{i:02d}", {"id": f"{i:02d}", "str": "x"})
    assert s3_client.page_size < 7
    with store.transaction() as tx:
        assert [k for k, _ in tx.scan("e1/")] == [f"e1/{i:02d}" for i in range(7)]


def test_scan_start_key_is_inclusive_across_pages(s3_client):
    store = _store(s3_client)
    with store.transaction() as tx:
        for i in range(7):
            tx.put(f"e1/{i:02d}", i)
    with store.transaction() as tx:
        assert [v for _, v in tx.scan("e1/", "e1/03")] == [3, 4, 5, 6]


def test_generated_list_paginates(s3_client):
    store = _store(s3_client)
    e1 = generate("e1", E1)
    with store.transaction() as tx:
        for name in ["foo", "bar", "baz", "qux", "abc"]:
            e1.create(tx, {"id": name, "str": name})
    with store.transaction() as tx:
        assert e1.list_ids(tx, {"startAtID": "bas", "limit": 3}) == ["baz", "foo", "qux"]


def test_missing_object_is_missing(s3_client):
    store = _store(s3_client)
    with store.transaction() as tx:
        assert tx.get("nope") is MISSING


class _FailingClient(FakeS3Client):
    def get_object(self, *, Bucket, Key):
        raise ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject")


def test_backend_errors_are_wrapped():
    store = _store(_FailingClient())
    with pytest.raises(StorageBackendError) as exc_info:
        with store.transaction() as tx:
            tx.get("k")
    assert exc_info.value.operation == "get_object"


def test_corrupt_object_raises(s3_client):
    s3_client.objects["root/k"] = b"{nope"
    store = _store(s3_client)
    with pytest.raises(StorageBackendError, match="not valid JSON"):
        with store.transaction() as tx:
            tx.get("k")


def test_storage_info(s3_client):
    info = _store(s3_client).storage_info()
    assert info == {
        "backend": "s3",
        "storage_uri": "s3://bucket/root",
        "bucket": "bucket",
        "prefix": "root",
    }
