"""
Row validators for decoded inventory rows.

Record-level only: cross-record concerns (duplicate SKUs within a file) are
resolved by the reconciliation engine, not rejected here. No range checks
are enforced on quantities; negative stock is accepted.

Architecture: inventory_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

import math
from typing import Any

from inventory_kernel.domain.dtos import ValidationError

from inventory_ingestion.domain.types import (
    NUMERIC_FIELDS,
    TEXT_FIELDS,
    CanonicalField,
    DecodedRow,
    RowRejection,
    StockRecord,
    ValidationOutcome,
    ValidRow,
)


def _missing(canonical: CanonicalField) -> ValidationError:
    return ValidationError(
        code="MISSING_REQUIRED_FIELD",
        message=f"Missing required field '{canonical.value}'",
        field=canonical.value,
    )


def validate_required_fields(candidate: DecodedRow) -> list[ValidationError]:
    """ItemName, SKU, Category, Unit and Status must be non-empty after trimming."""
    errors: list[ValidationError] = []
    for canonical in TEXT_FIELDS:
        value = candidate.get(canonical)
        if not isinstance(value, str) or not value.strip():
            errors.append(_missing(canonical))
    return errors


def validate_numeric_fields(candidate: DecodedRow) -> list[ValidationError]:
    """
    CurrentStock and ReorderLevel must be present, numeric and finite.

    Coercion errors already carried by the decoder take precedence so each
    field is reported once, with the most specific message.
    """
    errors: list[ValidationError] = []
    decoded_fields = {e.field for e in candidate.errors}
    for canonical in NUMERIC_FIELDS:
        if canonical.value in decoded_fields:
            errors.extend(e for e in candidate.errors if e.field == canonical.value)
            continue
        value: Any = candidate.get(canonical)
        if value is None:
            errors.append(_missing(canonical))
        elif isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            errors.append(
                ValidationError(
                    code="INVALID_NUMBER",
                    message=f"Invalid value for {canonical.value} ({value!r})",
                    field=canonical.value,
                    details={"value": str(value)},
                )
            )
    return errors


def validate_row(candidate: DecodedRow, row_index: int) -> ValidationOutcome:
    """
    Validate one decoded row.

    Returns ValidRow with a StockRecord, or RowRejection carrying every
    failure for the row (canonical field order), each message prefixed with
    the 1-based row index.
    """
    errors = validate_required_fields(candidate) + validate_numeric_fields(candidate)
    if errors:
        order = {c.value: i for i, c in enumerate(CanonicalField)}
        errors.sort(key=lambda e: order.get(e.field or "", len(order)))
        sku = candidate.get(CanonicalField.SKU) or None
        return RowRejection(
            row_index=row_index,
            errors=tuple(e.at_row(row_index) for e in errors),
            sku=sku,
        )

    record = StockRecord(
        item_name=candidate.get(CanonicalField.ITEM_NAME),
        sku=candidate.get(CanonicalField.SKU),
        category=candidate.get(CanonicalField.CATEGORY),
        unit=candidate.get(CanonicalField.UNIT),
        current_stock=float(candidate.get(CanonicalField.CURRENT_STOCK)),
        reorder_level=float(candidate.get(CanonicalField.REORDER_LEVEL)),
        status=candidate.get(CanonicalField.STATUS),
    )
    return ValidRow(row_index=row_index, record=record)
