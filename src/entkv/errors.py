"""Structured error types for entkv."""

from __future__ import annotations

from typing import Any

ErrorTree = dict[str, Any]


class EntkvError(Exception):
    """Base error for all entkv errors."""


class ValidationError(EntkvError):
    """Raised when a value fails schema validation.

    Carries the error tree: a root ``_errors`` list plus one nested tree per
    failing field.
    """

    def __init__(self, errors: ErrorTree) -> None:
        self.errors = errors
        super().__init__(f"Validation failed: {_summarize(errors)}")

    def format(self) -> ErrorTree:
        """Return the error tree."""
        return self.errors


class StorageBackendError(EntkvError):
    """Raised when backend storage operations fail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage backend error during {operation}: {detail}")


class TransactionClosedError(EntkvError):
    """Raised when a transaction is used after its context has exited."""

    def __init__(self) -> None:
        super().__init__("Transaction is closed")


def _summarize(tree: ErrorTree, path: str = "") -> str:
    parts: list[str] = []
    for msg in tree.get("_errors", []):
        parts.append(f"{path}: {msg}" if path else msg)
    for key, sub in tree.items():
        if key == "_errors" or not isinstance(sub, dict):
            continue
        child = f"{path}.{key}" if path else str(key)
        summary = _summarize(sub, child)
        if summary:
            parts.append(summary)
    return "; ".join(parts)
