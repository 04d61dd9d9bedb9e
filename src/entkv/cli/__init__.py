"""entkv CLI: operator console for entity stores."""

from __future__ import annotations

from typing import Optional

import typer
from click.core import ParameterSource

from entkv.cli import entities, info, schema

app = typer.Typer(
    name="entkv",
    help="entkv CLI: read and write validated entities in a key-value store.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    db: str = "entkv.db"
    storage_uri: str | None = None
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("entkv")
        except Exception:
            v = "unknown"
        print(f"entkv {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="ENTKV_DB",
        help="SQLite database file path (default: entkv.db)",
    ),
    storage_uri: Optional[str] = typer.Option(
        None,
        "--storage-uri",
        envvar="ENTKV_STORAGE_URI",
        help="Backend storage URI (e.g. sqlite:///entkv.db or s3://bucket/prefix)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all entkv commands."""
    from entkv.store import parse_storage_target

    db_source = ctx.get_parameter_source("db")
    uri_source = ctx.get_parameter_source("storage_uri")

    resolved_uri = storage_uri
    # Explicit --db overrides ENTKV_STORAGE_URI unless --storage-uri is also explicit.
    if db_source == ParameterSource.COMMANDLINE and uri_source == ParameterSource.ENVIRONMENT:
        resolved_uri = None

    if resolved_uri:
        db_for_validation = db if db_source == ParameterSource.COMMANDLINE else None
        try:
            parse_storage_target(db_path=db_for_validation, storage_uri=resolved_uri)
        except Exception as e:
            raise typer.BadParameter(str(e))

    state.db = db or "entkv.db"
    state.storage_uri = resolved_uri
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="create")(entities.create_cmd)
app.command(name="get")(entities.get_cmd)
app.command(name="update")(entities.update_cmd)
app.command(name="delete")(entities.delete_cmd)
app.command(name="list")(entities.list_cmd)
app.command(name="info")(info.info_cmd)
app.command(name="schema")(schema.schema_cmd)


def main() -> None:
    """Entry point for the entkv CLI."""
    app()
