"""CLI helpers for backend-aware store construction."""

from __future__ import annotations

import os
from typing import Any

import typer

from entkv.cli import _exitcodes as ec
from entkv.cli._output import print_error
from entkv.config import EntkvConfig, InvalidEntryPolicy
from entkv.store import open_store


def resolve_storage_binding() -> tuple[str | None, str | None]:
    """Return (db_path, storage_uri) from CLI state."""
    from entkv.cli import state

    if state.storage_uri:
        return None, state.storage_uri
    return state.db, None


def _env(name: str, parse: Any, default: Any) -> Any:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        print_error(f"Invalid value for {name}: {raw!r}")
        raise typer.Exit(ec.USAGE_ERROR)


def config_from_env() -> EntkvConfig:
    """Build store config from environment defaults.

    Exits with a usage error when a variable cannot be parsed.
    """
    defaults = EntkvConfig()
    return EntkvConfig(
        invalid_entry_policy=_env(
            "ENTKV_INVALID_ENTRY_POLICY", InvalidEntryPolicy, defaults.invalid_entry_policy
        ),
        sqlite_timeout_s=_env("ENTKV_SQLITE_TIMEOUT_S", float, defaults.sqlite_timeout_s),
        s3_region=os.getenv("ENTKV_S3_REGION"),
        s3_endpoint_url=os.getenv("ENTKV_S3_ENDPOINT_URL"),
        s3_request_timeout_s=_env(
            "ENTKV_S3_REQUEST_TIMEOUT_S", float, defaults.s3_request_timeout_s
        ),
        s3_max_attempts=_env("ENTKV_S3_MAX_ATTEMPTS", int, defaults.s3_max_attempts),
    )


def open_cli_store(config: EntkvConfig | None = None) -> Any:
    """Open the store selected by global CLI options."""
    db_path, storage_uri = resolve_storage_binding()
    return open_store(db_path, storage_uri=storage_uri, config=config or config_from_env())
