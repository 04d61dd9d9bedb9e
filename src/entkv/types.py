"""Entity base model and the MISSING sentinel."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

JSONValue = Any
Entity = dict[str, Any]


class _Missing:
    """Marker for "no value at all", distinct from a stored JSON ``null``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class EntityModel(BaseModel):
    """Base model for entity schemas.

    Subclass it to describe an entity kind::

        class Todo(EntityModel):
            title: str
            done: bool = False
    """

    id: str
