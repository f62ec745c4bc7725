"""In-process stock store. Atomic per key under a single lock."""

from __future__ import annotations

import threading
from typing import Any

from inventory_ingestion.domain.types import StockRecord, UpsertAction


class InMemoryStockStore:
    """
    Dict-backed PersistenceCapability.

    Used for tests, dry runs, and as the reference behaviour for the SQL
    store. ``upsert_calls`` records every call in order.
    """

    def __init__(self, records: dict[str, StockRecord] | None = None):
        self._records: dict[str, StockRecord] = dict(records or {})
        self._lock = threading.Lock()
        self.upsert_calls: list[str] = []

    def upsert(self, sku: str, fields: dict[str, Any]) -> UpsertAction:
        record = StockRecord.from_fields(sku, fields)
        with self._lock:
            self.upsert_calls.append(sku)
            action = UpsertAction.UPDATED if sku in self._records else UpsertAction.INSERTED
            self._records[sku] = record
        return action

    def get(self, sku: str) -> StockRecord | None:
        with self._lock:
            return self._records.get(sku)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def snapshot(self) -> dict[str, StockRecord]:
        with self._lock:
            return dict(self._records)
