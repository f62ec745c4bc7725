"""
Persistence capability protocol.

Contract:
    upsert(sku, fields) inserts or overwrites the record for ``sku``
    atomically and reports which one happened. Failures surface as
    ConflictError or UnavailableError, never as driver exceptions.

The ingestion core depends only on this protocol; concrete stores are
passed in by the caller.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from inventory_ingestion.domain.types import StockRecord, UpsertAction


@runtime_checkable
class PersistenceCapability(Protocol):
    """Keyed store of StockRecords with atomic per-SKU upsert."""

    def upsert(self, sku: str, fields: dict[str, Any]) -> UpsertAction:
        """Insert ``sku`` with ``fields`` or overwrite its non-key fields."""
        ...

    def get(self, sku: str) -> StockRecord | None:
        ...

    def count(self) -> int:
        ...
