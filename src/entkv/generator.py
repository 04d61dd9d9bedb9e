"""Entity operation generator.

``generate(prefix, schema)`` binds a key prefix and a schema into a set of
validated CRUD operations that run against a caller-supplied transaction::

    todos = generate("todo", Todo)
    with store.transaction() as tx:
        todos.create(tx, {"id": "t1", "title": "write docs"})
        todos.update(tx, {"id": "t1", "done": True})
        todos.list(tx, ListOptions(start_at_id="t", limit=10))

Every value entering or leaving the store passes through the schema. A failed
parse raises :class:`~entkv.errors.ValidationError` with the error tree and
leaves the transaction untouched by that operation. The operations never
commit, retry, or lock; the transaction owns atomicity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from entkv.config import InvalidEntryPolicy
from entkv.errors import ValidationError
from entkv.keys import id_from, key_for, scan_prefix
from entkv.schema import ParseResult, Schema, as_schema
from entkv.store import Transaction
from entkv.types import MISSING, Entity, JSONValue

logger = logging.getLogger(__name__)


class ListOptions(BaseModel):
    """Cursor and page size for ``list`` operations."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    start_at_id: str | None = Field(default=None, alias="startAtID")
    limit: NonNegativeInt | None = None


@dataclass(frozen=True)
class EntityOperations:
    """Operations bound to one prefix and schema."""

    prefix: str
    schema: Schema
    create: Callable[[Transaction, Any], None]
    get: Callable[[Transaction, str], Entity | None]
    update: Callable[[Transaction, Any], None]
    delete: Callable[[Transaction, str], None]
    list: Callable[..., list[Entity]]
    has: Callable[[Transaction, str], bool]
    init: Callable[[Transaction, Any], bool]
    list_ids: Callable[..., list[str]]
    list_entries: Callable[..., list[tuple[str, Entity]]]


def _coerce_options(options: ListOptions | dict[str, Any] | None) -> ListOptions:
    if options is None:
        return ListOptions()
    if isinstance(options, ListOptions):
        return options
    return ListOptions.model_validate(options)


def _unwrap(result: ParseResult) -> Any:
    if not result.ok:
        assert result.errors is not None
        raise ValidationError(result.errors)
    return result.value


def generate(
    prefix: str,
    schema: type[BaseModel] | Schema,
    *,
    on_invalid: InvalidEntryPolicy | str = InvalidEntryPolicy.ABORT,
) -> EntityOperations:
    """Build the operation set for entities stored under ``prefix``.

    Args:
        prefix: Key namespace; entities live at ``<prefix>/<id>``.
        schema: Pydantic model deriving from ``EntityModel``, or any ``Schema``.
        on_invalid: What list operations do with a stored value that fails
            validation: raise (``abort``) or log and leave it out (``skip``).

    Returns:
        EntityOperations whose callables all take the transaction first.
    """
    parser = as_schema(schema)
    policy = InvalidEntryPolicy(on_invalid)

    def parse_full(data: Any) -> Entity:
        return _unwrap(parser.parse_full(data))

    def create(tx: Transaction, data: Any) -> None:
        value = parse_full(data)
        key = key_for(prefix, value["id"])
        tx.put(key, value)
        logger.debug("Put %s", key)

    def init(tx: Transaction, data: Any) -> bool:
        value = parse_full(data)
        key = key_for(prefix, value["id"])
        if tx.get(key) is not MISSING:
            return False
        tx.put(key, value)
        logger.debug("Initialized %s", key)
        return True

    def get(tx: Transaction, entity_id: str) -> Entity | None:
        raw = tx.get(key_for(prefix, entity_id))
        if raw is MISSING:
            return None
        return parse_full(raw)

    def has(tx: Transaction, entity_id: str) -> bool:
        return tx.get(key_for(prefix, entity_id)) is not MISSING

    def update(tx: Transaction, data: Any) -> None:
        # Step 1: the update itself must be well formed before anything is read.
        changes = _unwrap(parser.parse_partial(data))
        key = key_for(prefix, changes["id"])

        # Step 2: read-modify-write inside the caller's transaction.
        raw = tx.get(key)
        if raw is MISSING:
            logger.debug("Update of %s skipped: no such entity", key)
            return
        existing = parse_full(raw)
        merged = dict(existing)
        for name, value in changes.items():
            if name != "id":
                merged[name] = value
        tx.put(key, merged)
        logger.debug("Updated %s fields=%s", key, sorted(k for k in changes if k != "id"))

    def delete(tx: Transaction, entity_id: str) -> None:
        tx.delete(key_for(prefix, entity_id))

    def scan_range(tx: Transaction, opts: ListOptions) -> Iterator[tuple[str, JSONValue]]:
        start_key = key_for(prefix, opts.start_at_id) if opts.start_at_id is not None else None
        return tx.scan(scan_prefix(prefix), start_key)

    def iter_entries(
        tx: Transaction, options: ListOptions | dict[str, Any] | None
    ) -> Iterator[tuple[str, Entity]]:
        opts = _coerce_options(options)
        if opts.limit == 0:
            return
        count = 0
        for key, raw in scan_range(tx, opts):
            result = parser.parse_full(raw)
            if not result.ok:
                if policy is InvalidEntryPolicy.SKIP:
                    logger.warning("Skipping invalid entity at %s: %s", key, result.errors)
                    continue
                _unwrap(result)
            yield id_from(prefix, key), result.value
            count += 1
            if opts.limit is not None and count >= opts.limit:
                return

    def list_entities(
        tx: Transaction, options: ListOptions | dict[str, Any] | None = None
    ) -> list[Entity]:
        return [value for _, value in iter_entries(tx, options)]

    def list_entries(
        tx: Transaction, options: ListOptions | dict[str, Any] | None = None
    ) -> list[tuple[str, Entity]]:
        return list(iter_entries(tx, options))

    def list_ids(tx: Transaction, options: ListOptions | dict[str, Any] | None = None) -> list[str]:
        opts = _coerce_options(options)
        ids: list[str] = []
        if opts.limit == 0:
            return ids
        for key, _ in scan_range(tx, opts):
            ids.append(id_from(prefix, key))
            if opts.limit is not None and len(ids) >= opts.limit:
                break
        return ids

    return EntityOperations(
        prefix=prefix,
        schema=parser,
        create=create,
        get=get,
        update=update,
        delete=delete,
        list=list_entities,
        has=has,
        init=init,
        list_ids=list_ids,
        list_entries=list_entries,
    )
