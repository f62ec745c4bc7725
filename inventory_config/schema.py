"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing one ingestion configuration. Instances are
produced by ``inventory_config.loader`` from YAML and handed to the
ingestion service; nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NumericPolicy(str, Enum):
    """How the row decoder treats missing or unparsable numeric text."""

    REJECT = "reject"  # Escalate to validation; the row is rejected
    DEFAULT_ZERO = "default_zero"  # Legacy behaviour: substitute 0.0


DEFAULT_MAX_FILE_BYTES = 2 * 1024 * 1024


@dataclass(frozen=True)
class IngestionConfig:
    """Effective settings for one ingestion service instance."""

    numeric_policy: NumericPolicy = NumericPolicy.REJECT
    # Extra header labels per canonical field, on top of the built-in synonyms
    header_synonyms: dict[str, tuple[str, ...]] = field(default_factory=dict)
    serialize_upserts: bool = False
    max_file_bytes: int | None = DEFAULT_MAX_FILE_BYTES
    delete_after_processing: bool = False
    encoding: str = "utf-8"
    delimiter: str = ","
    timeout_seconds: float | None = None
    database_url: str = "sqlite:///inventory.db"
