"""
Pytest fixtures for the inventory ingestion test suite.

Provides:
- Structured logging setup and a ``captured_logs`` fixture
- An in-memory store and a SQLite-backed SQLAlchemy store
- A deterministic clock
- CSV text / source factories

No external services are needed: the SQL store runs against a SQLite file
in ``tmp_path``.
"""

import json
import logging
from io import StringIO
from typing import Callable, Sequence

import pytest

from inventory_kernel.db import build_engine, build_session_factory, create_tables, drop_tables
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

from inventory_ingestion.adapters import CsvStreamSource
from inventory_ingestion.persistence import InMemoryStockStore, SqlAlchemyStockStore
from inventory_ingestion.services import IngestionService


HEADER = ("ItemName", "SKU", "Category", "Unit", "CurrentStock", "ReorderLevel", "Status")


def stock_row(
    sku: str,
    name: str | None = None,
    category: str = "Hardware",
    unit: str = "pcs",
    stock: str = "10",
    reorder: str = "5",
    status: str = "Active",
) -> list[str]:
    """One CSV data row in canonical column order."""
    return [name if name is not None else f"Item {sku}", sku, category, unit, stock, reorder, status]


def to_csv(rows: Sequence[Sequence[str]], header: Sequence[str] | None = HEADER) -> str:
    """Render rows as CSV text with standard quoting."""
    import csv

    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    if header is not None:
        writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.ingest(...)
            logs = captured_logs()
            assert any(r["message"] == "ingestion_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Time, stores, services
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def memory_store() -> InMemoryStockStore:
    return InMemoryStockStore()


@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a fresh file with the schema created."""
    eng = build_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def sql_store(session_factory) -> SqlAlchemyStockStore:
    return SqlAlchemyStockStore(session_factory)


@pytest.fixture
def service(memory_store, clock) -> IngestionService:
    return IngestionService(memory_store, clock=clock)


# =============================================================================
# CSV factories
# =============================================================================


@pytest.fixture
def make_source() -> Callable[..., CsvStreamSource]:
    """
    Build a CsvStreamSource from data rows (canonical header by default).

    Usage::

        source = make_source([stock_row("A1"), stock_row("B2")])
        source = make_source(rows, header=("Item Name", "sku", ...))
        source = make_source(text="ItemName,SKU\\n")
    """

    def _make(
        rows: Sequence[Sequence[str]] = (),
        header: Sequence[str] | None = HEADER,
        text: str | None = None,
        name: str = "stock.csv",
    ) -> CsvStreamSource:
        return CsvStreamSource.from_text(text if text is not None else to_csv(rows, header), name)

    return _make
