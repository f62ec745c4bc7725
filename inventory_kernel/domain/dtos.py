"""Data transfer objects shared by the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class ValidationError:
    """
    One problem with one field of one row.

    Row problems are reported, never raised: the decoder and validators
    return these and the report carries them to the caller. ``code`` is
    stable (``MISSING_REQUIRED_FIELD``, ``INVALID_NUMBER``,
    ``NON_FINITE_NUMBER``); ``message`` is for people.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None

    def at_row(self, row_index: int) -> ValidationError:
        """Copy with the 1-based row index in the message and details."""
        details = {**(self.details or {}), "row": row_index}
        return replace(self, message=f"Row {row_index}: {self.message}", details=details)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message, "field": self.field}
        if self.details:
            data["details"] = dict(self.details)
        return data
