"""
Per-SKU serialization for stores without atomic per-key upsert.

Concurrent ingestions that touch the same SKU take that SKU's lock for the
duration of the upsert, so the last writer wins cleanly instead of
interleaving a read-modify-write. Different SKUs never contend.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Any, Iterator

from inventory_ingestion.domain.types import StockRecord, UpsertAction
from inventory_ingestion.persistence.base import PersistenceCapability


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0  # Holders plus waiters


class KeyedLockRegistry:
    """
    Lock per key, alive only while some thread holds or waits on it.

    A key's entry is dropped when its last user releases, so the registry
    stays as small as the set of SKUs being written right now.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# One registry per wrapped store, shared by every SerializedStore over it
_REGISTRIES: "weakref.WeakKeyDictionary[Any, KeyedLockRegistry]" = weakref.WeakKeyDictionary()
_REGISTRIES_GUARD = threading.Lock()


def registry_for(store: PersistenceCapability) -> KeyedLockRegistry:
    with _REGISTRIES_GUARD:
        registry = _REGISTRIES.get(store)
        if registry is None:
            registry = KeyedLockRegistry()
            _REGISTRIES[store] = registry
        return registry


class SerializedStore:
    """PersistenceCapability wrapper that serializes upserts per SKU."""

    def __init__(self, inner: PersistenceCapability, registry: KeyedLockRegistry | None = None):
        self._inner = inner
        self._registry = registry if registry is not None else registry_for(inner)

    @property
    def inner(self) -> PersistenceCapability:
        return self._inner

    def upsert(self, sku: str, fields: dict[str, Any]) -> UpsertAction:
        with self._registry.hold(sku):
            return self._inner.upsert(sku, fields)

    def get(self, sku: str) -> StockRecord | None:
        return self._inner.get(sku)

    def count(self) -> int:
        return self._inner.count()
