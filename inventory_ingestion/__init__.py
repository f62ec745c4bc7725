"""
inventory_ingestion -- CSV inventory ingestion pipeline.

    stream -> header normalization -> row decode -> row validation
           -> reconciliation (intra-file dedup + upsert) -> IngestionReport

Layers:
    adapters/        StreamSource protocol, CsvStreamSource
    mapping/         header normalizer, row decoder (pure)
    domain/          frozen types, row validators (pure)
    reconciliation/  last-wins planning and keyed upsert
    persistence/     PersistenceCapability and its stores
    services/        IngestionService, CancellationToken
"""

from __future__ import annotations

from typing import Any

from inventory_config.schema import IngestionConfig

from inventory_ingestion.adapters import CsvStreamSource, StreamSource
from inventory_ingestion.domain.types import (
    CanonicalField,
    IngestionReport,
    IngestionStatus,
    RowRejection,
    StockRecord,
    UpsertAction,
)
from inventory_ingestion.mapping import HeaderSynonyms, normalize_header, resolve_headers
from inventory_ingestion.persistence import (
    InMemoryStockStore,
    PersistenceCapability,
    SerializedStore,
    SqlAlchemyStockStore,
)
from inventory_ingestion.services import CancellationToken, IngestionService


def ingest(
    source: StreamSource,
    store: PersistenceCapability,
    config: IngestionConfig | None = None,
    **kwargs: Any,
) -> IngestionReport:
    """One-shot ingestion of ``source`` into ``store``. Raises SchemaError."""
    return IngestionService(store, config=config).ingest(source, **kwargs)


__all__ = [
    "CancellationToken",
    "CanonicalField",
    "CsvStreamSource",
    "HeaderSynonyms",
    "InMemoryStockStore",
    "IngestionReport",
    "IngestionService",
    "IngestionStatus",
    "PersistenceCapability",
    "RowRejection",
    "SerializedStore",
    "SqlAlchemyStockStore",
    "StockRecord",
    "StreamSource",
    "UpsertAction",
    "ingest",
    "normalize_header",
    "resolve_headers",
]
