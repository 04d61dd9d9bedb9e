"""entkv create/get/update/delete/list: run entity operations from the shell."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import typer

from entkv.cli import _exitcodes as ec
from entkv.cli._loader import load_models
from entkv.cli._output import print_error, print_error_tree, print_object, print_table
from entkv.cli._storage import config_from_env, open_cli_store
from entkv.errors import StorageBackendError, ValidationError
from entkv.generator import EntityOperations, ListOptions, generate
from entkv.store import Transaction


def _operations(
    prefix: str,
    model: str,
    models: str | None,
    models_path: str | None,
) -> EntityOperations:
    if not models and not models_path:
        print_error("One of --models or --models-path is required")
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        found = load_models(models, models_path)
    except Exception as e:
        print_error(f"Failed to load models: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    if model not in found:
        print_error(f"Entity model '{model}' not found in models")
        raise typer.Exit(ec.USAGE_ERROR)

    return generate(prefix, found[model], on_invalid=config_from_env().invalid_entry_policy)


@contextmanager
def _transaction() -> Iterator[Transaction]:
    config = config_from_env()
    try:
        store = open_cli_store(config)
    except Exception as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    try:
        with store.transaction() as tx:
            yield tx
    except ValidationError as e:
        print_error(str(e))
        print_error_tree(e.format())
        raise typer.Exit(ec.VALIDATION_ERROR)
    except StorageBackendError as e:
        print_error(str(e))
        raise typer.Exit(ec.DATABASE_ERROR)
    finally:
        store.close()


def _read_json(data: str) -> Any:
    raw = sys.stdin.read() if data == "-" else data
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        print_error(f"Invalid JSON: {e}")
        raise typer.Exit(ec.USAGE_ERROR)


def create_cmd(
    prefix: str = typer.Argument(..., help="Key prefix of the entity kind"),
    data: str = typer.Argument(..., help="Entity as JSON, or '-' to read stdin"),
    model: str = typer.Option(..., "--model", help="Entity model class name"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
    if_absent: bool = typer.Option(
        False, "--if-absent", help="Only write when no entity exists under the id"
    ),
) -> None:
    """Create or overwrite an entity."""
    ops = _operations(prefix, model, models, models_path)
    value = _read_json(data)
    with _transaction() as tx:
        if if_absent:
            written = ops.init(tx, value)
        else:
            ops.create(tx, value)
            written = True
    if not written:
        print("Entity already exists; nothing written")


def get_cmd(
    prefix: str = typer.Argument(..., help="Key prefix of the entity kind"),
    entity_id: str = typer.Argument(..., help="Entity id"),
    model: str = typer.Option(..., "--model", help="Entity model class name"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
) -> None:
    """Read one entity by id."""
    from entkv.cli import state

    ops = _operations(prefix, model, models, models_path)
    with _transaction() as tx:
        entity = ops.get(tx, entity_id)
    if entity is None:
        print_error(f"Entity '{entity_id}' not found under '{prefix}'")
        raise typer.Exit(ec.NOT_FOUND)
    print_object(entity, json_mode=state.json_output)


def update_cmd(
    prefix: str = typer.Argument(..., help="Key prefix of the entity kind"),
    data: str = typer.Argument(..., help="Partial entity as JSON (must include id)"),
    model: str = typer.Option(..., "--model", help="Entity model class name"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
) -> None:
    """Merge the given fields into an existing entity (no-op if it does not exist)."""
    ops = _operations(prefix, model, models, models_path)
    value = _read_json(data)
    with _transaction() as tx:
        ops.update(tx, value)


def delete_cmd(
    prefix: str = typer.Argument(..., help="Key prefix of the entity kind"),
    entity_id: str = typer.Argument(..., help="Entity id"),
    model: str = typer.Option(..., "--model", help="Entity model class name"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
) -> None:
    """Delete an entity by id."""
    ops = _operations(prefix, model, models, models_path)
    with _transaction() as tx:
        ops.delete(tx, entity_id)


def list_cmd(
    prefix: str = typer.Argument(..., help="Key prefix of the entity kind"),
    model: str = typer.Option(..., "--model", help="Entity model class name"),
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
    start_at_id: Optional[str] = typer.Option(
        None, "--start-at-id", help="First id to include (inclusive)"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", min=0, help="Max results"),
    ids_only: bool = typer.Option(False, "--ids-only", help="Print ids without values"),
) -> None:
    """List entities in ascending id order."""
    from entkv.cli import state

    json_mode = state.json_output
    ops = _operations(prefix, model, models, models_path)
    options = ListOptions(start_at_id=start_at_id, limit=limit)
    with _transaction() as tx:
        if ids_only:
            ids = ops.list_ids(tx, options)
        else:
            entities = ops.list(tx, options)

    if ids_only:
        if json_mode:
            print_object(ids, json_mode=True)
        else:
            for entity_id in ids:
                print(entity_id)
        return

    if json_mode:
        print_object(entities, json_mode=True)
        return
    headers: list[str] = []
    for entity in entities:
        headers.extend(k for k in entity if k not in headers)
    rows = [[entity.get(h, "") for h in headers] for entity in entities]
    print_table(headers, rows)
