"""entkv: validated entity operations over ordered key-value transactions."""

__version__ = "0.1.0"

from entkv.config import EntkvConfig, InvalidEntryPolicy
from entkv.errors import (
    EntkvError,
    StorageBackendError,
    TransactionClosedError,
    ValidationError,
)
from entkv.generator import EntityOperations, ListOptions, generate
from entkv.keys import id_from, key_for
from entkv.schema import ModelSchema, ParseResult, Schema
from entkv.store import MemoryStore, Store, Transaction, open_store
from entkv.types import MISSING, EntityModel

__all__ = [
    "__version__",
    "generate",
    "EntityOperations",
    "ListOptions",
    "EntityModel",
    "MISSING",
    "Schema",
    "ModelSchema",
    "ParseResult",
    "key_for",
    "id_from",
    "Store",
    "Transaction",
    "MemoryStore",
    "open_store",
    "EntkvConfig",
    "InvalidEntryPolicy",
    "EntkvError",
    "ValidationError",
    "StorageBackendError",
    "TransactionClosedError",
]
