"""Tests for entkv info command."""

import json

from tests.cli.conftest import invoke


def test_info_basic(runner, seeded_db):
    result = invoke(runner, ["info"], seeded_db)
    assert result.exit_code == 0
    assert "Backend: sqlite" in result.output
    assert "Database:" in result.output
    assert "Keys: 4" in result.output


def test_info_json(runner, seeded_db):
    result = invoke(runner, ["--json", "info"], seeded_db)
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["backend"] == "sqlite"
    assert data["db_path"] == seeded_db
    assert data["key_count"] == 4


def test_info_stats(runner, seeded_db):
    result = invoke(runner, ["info", "--stats"], seeded_db)
    assert result.exit_code == 0
    assert "todo: 3" in result.output
    assert "note: 1" in result.output


def test_info_stats_json(runner, seeded_db):
    result = invoke(runner, ["--json", "info", "--stats"], seeded_db)
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["prefix_counts"] == {"note": 1, "todo": 3}


def test_info_missing_db(runner, tmp_path):
    db = str(tmp_path / "nonexistent.db")
    result = invoke(runner, ["info"], db)
    assert result.exit_code == 3


def test_info_memory_uri(runner):
    result = invoke(runner, ["--storage-uri", "memory://", "--json", "info"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"backend": "memory", "key_count": 0}


def test_invalid_storage_uri(runner):
    result = invoke(runner, ["--storage-uri", "redis://x", "info"])
    assert result.exit_code == 2


def test_info_bad_timeout_env(runner, seeded_db, monkeypatch):
    monkeypatch.setenv("ENTKV_SQLITE_TIMEOUT_S", "soon")
    result = invoke(runner, ["info"], seeded_db)
    assert result.exit_code == 2
    assert "ENTKV_SQLITE_TIMEOUT_S" in result.output
