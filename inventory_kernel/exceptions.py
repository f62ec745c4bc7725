"""
Typed exception hierarchy for inventory ingestion.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes so it survives logging and
serialization. Callers catch by type, never by message text.

    InventoryError (base)
    |
    +-- IngestionError
    |   +-- SchemaError
    |   +-- StreamReadError
    |   +-- SourceTooLargeError
    |   +-- IngestionCancelledError
    |
    +-- PersistenceError
    |   +-- ConflictError
    |   +-- UnavailableError
    |   +-- RecordRejectedError
    |
    +-- ConfigurationError

Code                     | When raised
-------------------------|------------------------------------------------
SCHEMA_ERROR             | Header row cannot be resolved to the canonical fields
STREAM_READ_ERROR        | Source failed while rows were being read
SOURCE_TOO_LARGE         | Source file exceeds the configured size limit
INGESTION_CANCELLED      | Caller cancelled or the deadline passed
PERSISTENCE_CONFLICT     | Store rejected an upsert because of a concurrent write
PERSISTENCE_UNAVAILABLE  | Store cannot be reached
PERSISTENCE_REJECTED     | Store refused the values of one record
CONFIGURATION_ERROR      | Invalid ingestion configuration

Row-level problems are NOT exceptions: they are ValidationError values
attached to a RowRejection and reported, never raised.
"""

from __future__ import annotations

from typing import Sequence


class InventoryError(Exception):
    """Base exception for all inventory ingestion errors."""

    code: str = "INVENTORY_ERROR"


# Ingestion-related exceptions


class IngestionError(InventoryError):
    """Base exception for failures of one ingestion call."""

    code: str = "INGESTION_ERROR"


class SchemaError(IngestionError):
    """
    Header row is missing one or more canonical fields.

    Fatal to the whole ingestion call; raised before any persistence call.
    """

    code: str = "SCHEMA_ERROR"

    def __init__(self, missing_fields: Sequence[str], message: str | None = None):
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            message or f"Missing columns: {', '.join(self.missing_fields)}"
        )


class StreamReadError(IngestionError):
    """The source stream failed while rows were being read."""

    code: str = "STREAM_READ_ERROR"

    def __init__(self, source_name: str, rows_read: int, reason: str):
        self.source_name = source_name
        self.rows_read = rows_read
        self.reason = reason
        super().__init__(
            f"Failed reading {source_name} after {rows_read} row(s): {reason}"
        )


class SourceTooLargeError(IngestionError):
    """Source file exceeds the configured size limit."""

    code: str = "SOURCE_TOO_LARGE"

    def __init__(self, source_name: str, size: int, limit: int):
        self.source_name = source_name
        self.size = size
        self.limit = limit
        super().__init__(
            f"Source {source_name} is {size} bytes; limit is {limit} bytes"
        )


class IngestionCancelledError(IngestionError):
    """Ingestion was cancelled by the caller or its deadline passed."""

    code: str = "INGESTION_CANCELLED"

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Ingestion cancelled: {reason}")


# Persistence-related exceptions


class PersistenceError(InventoryError):
    """Base exception for persistence capability failures."""

    code: str = "PERSISTENCE_ERROR"


class ConflictError(PersistenceError):
    """The store rejected an upsert because of a conflicting concurrent write."""

    code: str = "PERSISTENCE_CONFLICT"

    def __init__(self, sku: str, reason: str = "conflicting write"):
        self.sku = sku
        self.reason = reason
        super().__init__(f"Conflict upserting SKU {sku!r}: {reason}")


class UnavailableError(PersistenceError):
    """The store cannot be reached or refused the operation."""

    code: str = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, reason: str, sku: str | None = None):
        self.reason = reason
        self.sku = sku
        super().__init__(f"Inventory store unavailable: {reason}")


class RecordRejectedError(PersistenceError):
    """The store refused one record's values (too long for a column, bad type)."""

    code: str = "PERSISTENCE_REJECTED"

    def __init__(self, sku: str, reason: str):
        self.sku = sku
        self.reason = reason
        super().__init__(f"Store rejected SKU {sku!r}: {reason}")


# Configuration


class ConfigurationError(InventoryError):
    """Ingestion configuration is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key!r}: {reason}")
