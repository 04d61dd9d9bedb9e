"""entkv info: show store status and key counts."""

from __future__ import annotations

import os
from collections import Counter
from typing import Any

import typer

from entkv.cli import _exitcodes as ec
from entkv.cli._output import print_error, print_object
from entkv.cli._storage import config_from_env, open_cli_store, resolve_storage_binding
from entkv.keys import SEPARATOR
from entkv.store import parse_storage_target


def info_cmd(
    stats: bool = typer.Option(False, "--stats", help="Show key counts per prefix"),
) -> None:
    """Show store status and high-level metadata."""
    from entkv.cli import state

    json_mode = state.json_output
    db_path, storage_uri = resolve_storage_binding()
    sqlite_path_to_check: str | None = None
    if storage_uri is not None:
        try:
            target = parse_storage_target(storage_uri=storage_uri)
        except Exception as e:
            print_error(f"Invalid storage URI: {e}")
            raise typer.Exit(ec.DATABASE_ERROR)
        if target.backend == "sqlite":
            sqlite_path_to_check = target.db_path
    else:
        sqlite_path_to_check = db_path

    if (
        sqlite_path_to_check
        and sqlite_path_to_check != ":memory:"
        and not os.path.exists(sqlite_path_to_check)
    ):
        print_error(f"Database not found: {sqlite_path_to_check}")
        raise typer.Exit(ec.DATABASE_ERROR)

    config = config_from_env()
    try:
        store = open_cli_store(config)
    except Exception as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    try:
        data: dict[str, Any] = dict(store.storage_info())
        if stats:
            counts: Counter[str] = Counter()
            with store.transaction() as tx:
                for key, _ in tx.scan(""):
                    counts[key.split(SEPARATOR, 1)[0]] += 1
            data["prefix_counts"] = dict(sorted(counts.items()))

        if json_mode:
            print_object(data, json_mode=True)
            return

        backend = str(data.get("backend", "unknown"))
        print(f"Backend: {backend}")
        if backend == "sqlite":
            print(f"Database: {data.get('db_path')}")
        elif backend == "s3":
            print(f"Storage URI: {data.get('storage_uri')}")
            print(f"Bucket: {data.get('bucket')}")
            print(f"Prefix: {data.get('prefix')}")
        if "key_count" in data:
            print(f"Keys: {data['key_count']}")
        if stats:
            print("\nKeys per prefix:")
            for name, cnt in data["prefix_counts"].items():
                print(f"  {name}: {cnt}")
    finally:
        store.close()
