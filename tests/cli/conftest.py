"""Shared fixtures for CLI tests."""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from entkv import generate
from entkv.cli import app
from entkv.store_sqlite import SqliteStore

# Reuse the model types from the main conftest
from tests.conftest import Todo

if TYPE_CHECKING:
    from click.testing import Result


MODELS_SOURCE = textwrap.dedent("""\
    from datetime import datetime
    from enum import Enum

    from entkv import EntityModel


    class Todo(EntityModel):
        title: str
        done: bool = False
        priority: int = 0
        tags: list[str] = []


    class Note(EntityModel):
        body: str


    class Color(str, Enum):
        RED = "red"
        GREEN = "green"


    class Event(EntityModel):
        when: datetime
        color: Color
""")


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(scope="session")
def models_file(tmp_path_factory):
    """Write a models module once; the loader caches it by module name."""
    path = tmp_path_factory.mktemp("models") / "entkv_cli_models.py"
    path.write_text(MODELS_SOURCE)
    return str(path)


@pytest.fixture
def cli_db(tmp_path):
    """Create a temp DB path and set it as the CLI state."""
    db_path = str(tmp_path / "cli_test.db")
    return db_path


@pytest.fixture
def seeded_db(cli_db):
    """Create a DB with some seed data."""
    store = SqliteStore(cli_db)
    todos = generate("todo", Todo)
    with store.transaction() as tx:
        todos.create(tx, {"id": "t1", "title": "write docs", "priority": 2})
        todos.create(tx, {"id": "t2", "title": "ship", "done": True})
        todos.create(tx, {"id": "t3", "title": "rest"})
        tx.put("note/n1", {"id": "n1", "body": "hello"})
    store.close()
    return cli_db


def invoke(runner: CliRunner, args: list[str], db_path: str | None = None) -> "Result":
    """Invoke CLI with proper state setup."""
    if db_path:
        # Inject --db before subcommand
        args = ["--db", db_path] + args
    result = runner.invoke(app, args, catch_exceptions=False)
    return result
