"""Schema contract and the pydantic-backed validator adapter.

Parsers never raise: they return a :class:`ParseResult` holding either the
validated value or an error tree. Turning a failed result into an exception is
left to the generated operations.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Annotated, Any, Protocol, runtime_checkable

from pydantic import BaseModel, create_model
from pydantic import Field as PydanticField
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from entkv.errors import ErrorTree
from entkv.types import MISSING

REQUIRED_MESSAGE = "Required"

_EXPECTED_BY_ERROR_TYPE = {
    "string_type": "string",
    "int_type": "integer",
    "float_type": "number",
    "bool_type": "boolean",
    "dict_type": "object",
    "model_type": "object",
    "model_attributes_type": "object",
    "dataclass_type": "object",
    "list_type": "array",
    "tuple_type": "array",
    "set_type": "set",
    "none_required": "null",
}


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a parse: ``value`` when ``ok``, otherwise ``errors``."""

    value: Any = None
    errors: ErrorTree | None = None

    @property
    def ok(self) -> bool:
        return self.errors is None

    @classmethod
    def success(cls, value: Any) -> ParseResult:
        return cls(value=value)

    @classmethod
    def failure(cls, errors: ErrorTree) -> ParseResult:
        return cls(errors=errors)


@runtime_checkable
class Schema(Protocol):
    """Capability contract the entity generator depends on."""

    def parse_full(self, data: Any) -> ParseResult: ...

    def parse_partial(self, data: Any) -> ParseResult: ...


def received_type(value: Any) -> str:
    """Name a value's JSON type the way error messages report it."""
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float) and math.isnan(value):
        return "nan"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _error_message(err: Any) -> str:
    err_type = err["type"]
    if err_type == "missing":
        return REQUIRED_MESSAGE
    expected = _EXPECTED_BY_ERROR_TYPE.get(err_type)
    if expected is not None:
        return f"Expected {expected}, received {received_type(err.get('input'))}"
    return str(err["msg"])


def format_errors(errors: Iterable[Any]) -> ErrorTree:
    """Fold pydantic error details into an error tree keyed by field path."""
    tree: ErrorTree = {"_errors": []}
    for err in errors:
        node = tree
        for part in err["loc"]:
            node = node.setdefault(str(part), {"_errors": []})
        node["_errors"].append(_error_message(err))
    return tree


def required_tree() -> ErrorTree:
    return {"_errors": [REQUIRED_MESSAGE]}


def _validate_strict(model: type[BaseModel], data: Any) -> BaseModel:
    """Validate against the model's JSON-mode schema, without type coercion.

    Stored values are JSON, so dates, enums, UUIDs and similar fields must be
    accepted in their JSON form. Python objects such as ``datetime`` are first
    converted to that form. Input that has no JSON form is validated as is.
    """
    try:
        encoded = json.dumps(to_jsonable_python(data))
    except (PydanticSerializationError, TypeError, ValueError):
        return model.model_validate(data, strict=True)
    return model.model_validate_json(encoded, strict=True)


def _build_partial_model(model: type[BaseModel]) -> type[BaseModel]:
    """Derive a model where ``id`` stays required and every other field is optional.

    Optional fields keep their type and constraints; only their presence is
    relaxed. Defaults are dropped so that absent fields stay absent.
    """
    fields: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        if name == "id":
            fields[name] = (info.annotation, info)
            continue
        annotation: Any = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        fields[name] = (
            annotation,
            PydanticField(
                default=None,
                alias=info.alias,
                validation_alias=info.validation_alias,
                description=info.description,
            ),
        )
    return create_model(  # type: ignore[call-overload]
        f"{model.__name__}Partial",
        __config__=model.model_config,
        **fields,
    )


class ModelSchema:
    """:class:`Schema` implementation over a pydantic model.

    Validation is strict: JSON types are never coerced into one another.
    Unknown keys are dropped per the model's ``extra`` setting.
    """

    def __init__(self, model: type[BaseModel]) -> None:
        if "id" not in model.model_fields:
            raise TypeError(f"Entity schema '{model.__name__}' must define an 'id' field")
        self.model = model
        self.partial_model = _build_partial_model(model)

    def __repr__(self) -> str:
        return f"ModelSchema({self.model.__name__})"

    def parse_full(self, data: Any) -> ParseResult:
        if data is MISSING:
            return ParseResult.failure(required_tree())
        try:
            instance = _validate_strict(self.model, data)
        except PydanticValidationError as e:
            return ParseResult.failure(format_errors(e.errors()))
        # Optional fields the input never mentioned stay absent.
        absent = {
            name
            for name in self.model.model_fields
            if name not in instance.model_fields_set and getattr(instance, name) is None
        }
        return ParseResult.success(instance.model_dump(mode="json", by_alias=True, exclude=absent))

    def parse_partial(self, data: Any) -> ParseResult:
        if data is MISSING:
            return ParseResult.failure(required_tree())
        try:
            instance = _validate_strict(self.partial_model, data)
        except PydanticValidationError as e:
            return ParseResult.failure(format_errors(e.errors()))
        return ParseResult.success(
            instance.model_dump(mode="json", by_alias=True, exclude_unset=True)
        )

    def json_schema(self, *, partial: bool = False) -> dict[str, Any]:
        model = self.partial_model if partial else self.model
        return model.model_json_schema()


def as_schema(schema: type[BaseModel] | Schema) -> Schema:
    """Accept a pydantic model class or anything implementing :class:`Schema`."""
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return ModelSchema(schema)
    if isinstance(schema, Schema):
        return schema
    raise TypeError(f"Expected a pydantic model or Schema, got {type(schema).__name__}")
