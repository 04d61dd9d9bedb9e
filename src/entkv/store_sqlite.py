"""SQLite-backed ordered key-value store."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from entkv.errors import StorageBackendError, TransactionClosedError
from entkv.store import scan_start
from entkv.types import MISSING, JSONValue

logger = logging.getLogger(__name__)


def _prefix_upper_bound(prefix: str) -> str | None:
    """Smallest string greater than every string starting with ``prefix``."""
    while prefix:
        last = ord(prefix[-1])
        if last < 0x10FFFF:
            return prefix[:-1] + chr(last + 1)
        prefix = prefix[:-1]
    return None


def _decode(key: str, raw: str) -> JSONValue:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageBackendError(
            "decode", f"Stored value at '{key}' is not valid JSON: {e}"
        ) from e


class SqliteTransaction:
    """Reads and writes straight through an open SQLite transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._closed = False

    def get(self, key: str) -> JSONValue:
        self._check_open()
        row = self._conn.execute("SELECT value_json FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return MISSING
        return _decode(key, row[0])

    def put(self, key: str, value: JSONValue) -> None:
        self._check_open()
        self._conn.execute(
            "INSERT OR REPLACE INTO kv (key, value_json) VALUES (?, ?)",
            (key, json.dumps(value)),
        )

    def delete(self, key: str) -> None:
        self._check_open()
        self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def scan(self, prefix: str, start_key: str | None = None) -> Iterator[tuple[str, JSONValue]]:
        self._check_open()
        sql = "SELECT key, value_json FROM kv WHERE key >= ?"
        params: list[Any] = [scan_start(prefix, start_key)]
        upper = _prefix_upper_bound(prefix)
        if upper is not None:
            sql += " AND key < ?"
            params.append(upper)
        sql += " ORDER BY key"
        return self._iter_rows(sql, params)

    def _iter_rows(self, sql: str, params: list[Any]) -> Iterator[tuple[str, JSONValue]]:
        cursor = self._conn.execute(sql, params)
        try:
            for key, raw in cursor:
                yield key, _decode(key, raw)
        finally:
            cursor.close()

    def close(self) -> None:
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionClosedError()


class SqliteStore:
    """SQLite-backed store with one ``kv`` table ordered by key."""

    def __init__(self, db_path: str, *, timeout_s: float = 5.0) -> None:
        self.db_path = db_path
        # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE.
        self._conn = sqlite3.connect(db_path, timeout=timeout_s, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL
            ) WITHOUT ROWID
        """)

    def close(self) -> None:
        self._conn.close()

    # --- Transaction helpers ---

    def begin_transaction(self) -> None:
        self._conn.execute("BEGIN IMMEDIATE")

    def commit_transaction(self) -> None:
        self._conn.execute("COMMIT")

    def rollback_transaction(self) -> None:
        self._conn.execute("ROLLBACK")

    @contextmanager
    def transaction(self) -> Iterator[SqliteTransaction]:
        self.begin_transaction()
        tx = SqliteTransaction(self._conn)
        try:
            yield tx
        except BaseException:
            self.rollback_transaction()
            logger.debug("Rolled back transaction on %s", self.db_path)
            raise
        else:
            self.commit_transaction()
        finally:
            tx.close()

    def storage_info(self) -> dict[str, Any]:
        row = self._conn.execute("SELECT COUNT(*) FROM kv").fetchone()
        return {"backend": "sqlite", "db_path": self.db_path, "key_count": row[0]}
