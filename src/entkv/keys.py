"""Storage key codec: ``<prefix>/<id>``."""

from __future__ import annotations

SEPARATOR = "/"


def key_for(prefix: str, entity_id: str) -> str:
    return f"{prefix}{SEPARATOR}{entity_id}"


def scan_prefix(prefix: str) -> str:
    """Key prefix shared by every entity stored under ``prefix``."""
    return f"{prefix}{SEPARATOR}"


def id_from(prefix: str, key: str) -> str:
    """Extract the entity id from a key produced by :func:`key_for`.

    Only meaningful for keys under ``scan_prefix(prefix)``.
    """
    return key[len(prefix) + len(SEPARATOR) :]
