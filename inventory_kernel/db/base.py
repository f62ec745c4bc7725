"""
Declarative base for the inventory tables.

Every table gets a surrogate UUID ``id`` (stored as text so SQLite and
Postgres share one schema) and constraint names from ``NAMING_CONVENTION``.
SKU uniqueness is declared on the model itself.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID held in a String(36) column."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    # Quantities are plain floats; timestamps are always timezone aware
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        float: Float,
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds ``created_at`` and ``updated_at``.

    Both are filled by the database. ``updated_at`` moves on every UPDATE
    the ORM issues, so it records the last ingestion that touched a row.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
