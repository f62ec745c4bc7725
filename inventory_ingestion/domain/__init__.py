"""Pure domain types and validators for inventory ingestion. ZERO I/O."""

from inventory_ingestion.domain.types import (
    NUMERIC_FIELDS,
    TEXT_FIELDS,
    CanonicalField,
    DecodedRow,
    IngestionReport,
    IngestionStatus,
    RawRow,
    RowRejection,
    StockRecord,
    SupersededRow,
    UpsertAction,
    ValidationOutcome,
    ValidRow,
)
from inventory_ingestion.domain.validators import (
    validate_numeric_fields,
    validate_required_fields,
    validate_row,
)

__all__ = [
    "NUMERIC_FIELDS",
    "TEXT_FIELDS",
    "CanonicalField",
    "DecodedRow",
    "IngestionReport",
    "IngestionStatus",
    "RawRow",
    "RowRejection",
    "StockRecord",
    "SupersededRow",
    "UpsertAction",
    "ValidRow",
    "ValidationOutcome",
    "validate_numeric_fields",
    "validate_required_fields",
    "validate_row",
]
