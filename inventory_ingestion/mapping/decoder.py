"""
Row decoder: pure transformation from a RawRow to a DecodedRow candidate.

Text fields are trimmed; CurrentStock and ReorderLevel are parsed as
standard decimal notation. Under NumericPolicy.REJECT (the default) a
failed parse is carried as an error for the validator to escalate, so a
bad quantity is never stored as zero. ZERO I/O.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from inventory_config.schema import NumericPolicy
from inventory_kernel.domain.dtos import ValidationError

from inventory_ingestion.domain.types import (
    NUMERIC_FIELDS,
    TEXT_FIELDS,
    CanonicalField,
    DecodedRow,
    RawRow,
)
from inventory_ingestion.mapping.headers import HeaderMapping

# Optional sign, digits with optional fraction (or a bare fraction), optional exponent.
_DECIMAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing a string to a number."""

    success: bool
    value: float | None = None
    error: ValidationError | None = None


def parse_number(text: str | None, field_name: str = "") -> CoercionResult:
    """
    Parse standard decimal notation into a finite float. Pure function.

    Rejects empty input, thousands separators, ``nan``/``inf`` spellings and
    values that overflow to infinity.
    """
    s = text.strip() if isinstance(text, str) else ""
    if not s:
        return CoercionResult(
            success=False,
            error=ValidationError(
                code="MISSING_REQUIRED_FIELD",
                message=f"Missing required field '{field_name}'",
                field=field_name or None,
            ),
        )
    if not _DECIMAL.fullmatch(s):
        return CoercionResult(
            success=False,
            error=ValidationError(
                code="INVALID_NUMBER",
                message=f"Invalid value for {field_name} ({s!r})",
                field=field_name or None,
                details={"value": s},
            ),
        )
    value = float(s)
    if not math.isfinite(value):
        return CoercionResult(
            success=False,
            error=ValidationError(
                code="NON_FINITE_NUMBER",
                message=f"Value for {field_name} is not finite ({s!r})",
                field=field_name or None,
                details={"value": s},
            ),
        )
    return CoercionResult(success=True, value=value)


def decode_row(
    raw_row: RawRow,
    header_mapping: HeaderMapping,
    numeric_policy: NumericPolicy = NumericPolicy.REJECT,
) -> DecodedRow:
    """
    Decode one raw row into a candidate record.

    Missing cells (short rows) decode as empty text. Under DEFAULT_ZERO a
    numeric parse failure becomes 0.0 with no error.
    """
    values: dict[CanonicalField, object] = {}
    errors: list[ValidationError] = []

    for canonical in TEXT_FIELDS:
        raw = raw_row.get(header_mapping.label_for(canonical))
        values[canonical] = raw.strip() if isinstance(raw, str) else ""

    for canonical in NUMERIC_FIELDS:
        raw = raw_row.get(header_mapping.label_for(canonical))
        result = parse_number(raw, canonical.value)
        if result.success:
            values[canonical] = result.value
        elif numeric_policy is NumericPolicy.DEFAULT_ZERO:
            values[canonical] = 0.0
        else:
            values[canonical] = None
            errors.append(result.error)

    return DecodedRow(values=values, errors=tuple(errors))
