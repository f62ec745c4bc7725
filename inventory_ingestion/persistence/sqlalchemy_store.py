"""
SQLAlchemy-backed stock store.

Each upsert runs in its own transaction: SELECT ... FOR UPDATE on the SKU,
then UPDATE or INSERT. The unique constraint on ``stock_items.sku`` settles
the race where two writers both see "absent": the loser gets IntegrityError
and is retried once as an update. A second failure is a ConflictError.

Values the database refuses (DataError, e.g. a SKU longer than its column)
become RecordRejectedError. Connectivity failures and any other SQLAlchemy
error become UnavailableError, so no driver exception leaves the store.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import session_scope
from inventory_kernel.exceptions import ConflictError, RecordRejectedError, UnavailableError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import StockItemModel

from inventory_ingestion.domain.types import StockRecord, UpsertAction

logger = get_logger("ingestion.sqlalchemy_store")

_MAX_ATTEMPTS = 2


def _driver_message(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class SqlAlchemyStockStore:
    """PersistenceCapability over the ``stock_items`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _upsert_once(self, sku: str, fields: dict[str, Any]) -> UpsertAction:
        with session_scope(self._session_factory) as session:
            stmt = select(StockItemModel).where(StockItemModel.sku == sku).with_for_update()
            existing = session.scalars(stmt).first()
            if existing is not None:
                existing.apply_fields(fields)
                action = UpsertAction.UPDATED
            else:
                item = StockItemModel(sku=sku)
                item.apply_fields(fields)
                session.add(item)
                action = UpsertAction.INSERTED
            session.flush()
        return action

    def upsert(self, sku: str, fields: dict[str, Any]) -> UpsertAction:
        for attempt in range(1, _MAX_ATTEMPTS + 1):
            try:
                return self._upsert_once(sku, fields)
            except IntegrityError as exc:
                if attempt == _MAX_ATTEMPTS:
                    raise ConflictError(sku, _driver_message(exc)) from exc
                logger.info("upsert_retry", extra={"sku": sku, "attempt": attempt})
            except DataError as exc:
                raise RecordRejectedError(sku, _driver_message(exc)) from exc
            except SQLAlchemyError as exc:
                raise UnavailableError(_driver_message(exc), sku=sku) from exc
        raise ConflictError(sku, "retries exhausted")

    def get(self, sku: str) -> StockRecord | None:
        try:
            with session_scope(self._session_factory) as session:
                item = session.scalars(select(StockItemModel).where(StockItemModel.sku == sku)).first()
                return StockRecord.from_fields(item.sku, item.to_fields()) if item else None
        except SQLAlchemyError as exc:
            raise UnavailableError(_driver_message(exc), sku=sku) from exc

    def count(self) -> int:
        try:
            with session_scope(self._session_factory) as session:
                return session.scalar(select(func.count()).select_from(StockItemModel)) or 0
        except SQLAlchemyError as exc:
            raise UnavailableError(_driver_message(exc)) from exc

    def list_records(self) -> list[StockRecord]:
        """All stored records ordered by SKU."""
        try:
            with session_scope(self._session_factory) as session:
                items = session.scalars(select(StockItemModel).order_by(StockItemModel.sku)).all()
                return [StockRecord.from_fields(i.sku, i.to_fields()) for i in items]
        except SQLAlchemyError as exc:
            raise UnavailableError(_driver_message(exc)) from exc
