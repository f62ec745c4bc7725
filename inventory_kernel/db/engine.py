"""
Module: inventory_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factories and the
    transactional scope helper.
Architecture position: Kernel > DB. May import from db/base.py and models/.

The engine is an explicit value handed to whoever needs it; there is no
module-level engine. Stores receive a session factory through their
constructor, which keeps the ingestion core testable against a fake store.

Failure modes:
    - sqlalchemy.exc.ArgumentError for a malformed database URL.
    - OperationalError on first use if the database is unreachable
      (translated to UnavailableError by the stores).
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Build an Engine for the given URL.

    PostgreSQL URLs get a QueuePool with pre-ping and READ COMMITTED
    isolation; row-level locking (FOR UPDATE) provides per-SKU atomicity.
    SQLite URLs (tests, local runs) use SQLAlchemy's default pool.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "echo": echo},
    )
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to ``engine``; objects stay usable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Commits on normal exit; rolls back and re-raises on exception; always
    closes the session.
    """
    session = factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back")
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create every table registered on Base.metadata (idempotent)."""
    from inventory_kernel.db.base import Base
    from inventory_kernel.models import StockItemModel  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables(engine: Engine) -> None:
    """Drop every table registered on Base.metadata. FOR TESTING ONLY."""
    from inventory_kernel.db.base import Base
    from inventory_kernel.models import StockItemModel  # noqa: F401

    Base.metadata.drop_all(engine)
