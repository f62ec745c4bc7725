"""Database layer: declarative base, engine construction, session scope."""

from inventory_kernel.db.base import Base, TrackedBase, UUIDString
from inventory_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "build_engine",
    "build_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
]
