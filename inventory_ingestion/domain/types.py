"""
inventory_ingestion.domain.types -- Pure frozen dataclasses for the ingestion pipeline.

ZERO I/O. Imports only from inventory_kernel/domain/.

Row lifecycle:
    RawRow (dict from the stream) -> DecodedRow -> ValidRow | RowRejection
    -> planned upsert -> UpsertAction recorded on the IngestionReport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union
from uuid import UUID

from inventory_kernel.domain.dtos import ValidationError

RawRow = dict[str, "str | None"]


# =============================================================================
# Canonical schema
# =============================================================================


class CanonicalField(str, Enum):
    """The fixed inventory schema, in canonical (report) order."""

    ITEM_NAME = "ItemName"
    SKU = "SKU"
    CATEGORY = "Category"
    UNIT = "Unit"
    CURRENT_STOCK = "CurrentStock"
    REORDER_LEVEL = "ReorderLevel"
    STATUS = "Status"


TEXT_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField.ITEM_NAME,
    CanonicalField.SKU,
    CanonicalField.CATEGORY,
    CanonicalField.UNIT,
    CanonicalField.STATUS,
)
NUMERIC_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField.CURRENT_STOCK,
    CanonicalField.REORDER_LEVEL,
)


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class StockRecord:
    """One validated inventory row. ``sku`` is the natural key."""

    item_name: str
    sku: str
    category: str
    unit: str
    current_stock: float
    reorder_level: float
    status: str

    def upsert_fields(self) -> dict[str, Any]:
        """Non-key fields, as handed to PersistenceCapability.upsert()."""
        return {
            "item_name": self.item_name,
            "category": self.category,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "reorder_level": self.reorder_level,
            "status": self.status,
        }

    @classmethod
    def from_fields(cls, sku: str, fields: dict[str, Any]) -> StockRecord:
        return cls(sku=sku, **fields)


@dataclass(frozen=True)
class DecodedRow:
    """
    Candidate record produced by the row decoder.

    ``values`` holds trimmed text for text fields and float (or None when
    parsing failed) for numeric fields. ``errors`` carries coercion failures
    that the validator must escalate.
    """

    values: dict[CanonicalField, Any]
    errors: tuple[ValidationError, ...] = ()

    def get(self, canonical: CanonicalField) -> Any:
        return self.values.get(canonical)


@dataclass(frozen=True)
class ValidRow:
    """Validation outcome for an accepted row."""

    row_index: int  # 1-based, header excluded
    record: StockRecord

    is_valid = True


@dataclass(frozen=True)
class RowRejection:
    """Validation outcome for a rejected row. Never fatal to the ingestion."""

    row_index: int  # 1-based, header excluded
    errors: tuple[ValidationError, ...]
    sku: str | None = None

    is_valid = False

    @property
    def reason(self) -> str:
        return "; ".join(e.message for e in self.errors)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(e.field for e in self.errors if e.field))

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_index,
            "sku": self.sku,
            "reason": self.reason,
            "errors": [e.to_dict() for e in self.errors],
        }


ValidationOutcome = Union[ValidRow, RowRejection]


# =============================================================================
# Reconciliation and reporting
# =============================================================================


class UpsertAction(str, Enum):
    """Effect of one upsert against the store."""

    INSERTED = "inserted"
    UPDATED = "updated"


class IngestionStatus(str, Enum):
    """Outcome of one ingestion call."""

    COMPLETED = "completed"  # Every valid row committed (rejections allowed)
    EMPTY = "empty"  # Header present, zero data rows
    NO_VALID_ROWS = "no_valid_rows"  # Data rows present, all rejected
    PARTIAL_FAILURE = "partial_failure"  # Store failed mid-batch
    TRUNCATED = "truncated"  # Stream failed mid-file; nothing committed
    CANCELLED = "cancelled"  # Caller cancelled or deadline passed


@dataclass(frozen=True)
class SupersededRow:
    """An earlier occurrence of a SKU replaced by a later row in the same file."""

    row_index: int
    sku: str
    superseded_by: int


@dataclass(frozen=True)
class IngestionReport:
    """
    Aggregate result of one ingestion call. Returned to the caller, never persisted.

    ``skipped`` counts intra-file duplicates superseded by a later row;
    ``rejected`` counts rows that failed validation.
    """

    batch_id: UUID
    source_name: str
    status: IngestionStatus
    rows_seen: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    rejected: int = 0
    rejections: tuple[RowRejection, ...] = ()
    superseded: tuple[SupersededRow, ...] = ()
    actions: dict[str, UpsertAction] = field(default_factory=dict)
    truncated: bool = False
    error_code: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def committed(self) -> int:
        return self.inserted + self.updated

    @property
    def is_success(self) -> bool:
        return self.status in (IngestionStatus.COMPLETED, IngestionStatus.EMPTY)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": str(self.batch_id),
            "source": self.source_name,
            "status": self.status.value,
            "rows_seen": self.rows_seen,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "rejected": self.rejected,
            "committed": self.committed,
            "truncated": self.truncated,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "rejections": [r.to_dict() for r in self.rejections],
            "actions": {sku: action.value for sku, action in self.actions.items()},
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
