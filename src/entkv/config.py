"""Configuration for entkv stores and generated operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InvalidEntryPolicy(str, Enum):
    """What ``list`` does with a stored value that fails validation."""

    ABORT = "abort"
    SKIP = "skip"


@dataclass
class EntkvConfig:
    """Configuration for entkv stores and operation sets."""

    invalid_entry_policy: InvalidEntryPolicy = InvalidEntryPolicy.ABORT
    sqlite_timeout_s: float = 5.0
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_request_timeout_s: float = 10.0
    s3_max_attempts: int = 5
