"""Persistence capabilities: protocol plus in-memory, SQLAlchemy and serialized stores."""

from inventory_ingestion.persistence.base import PersistenceCapability
from inventory_ingestion.persistence.memory import InMemoryStockStore
from inventory_ingestion.persistence.serialized import KeyedLockRegistry, SerializedStore, registry_for
from inventory_ingestion.persistence.sqlalchemy_store import SqlAlchemyStockStore

__all__ = [
    "InMemoryStockStore",
    "KeyedLockRegistry",
    "PersistenceCapability",
    "SerializedStore",
    "SqlAlchemyStockStore",
    "registry_for",
]
