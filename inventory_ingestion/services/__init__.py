"""Ingestion orchestration and cooperative cancellation."""

from inventory_ingestion.services.cancellation import CancellationToken
from inventory_ingestion.services.ingestion_service import IngestionService

__all__ = ["CancellationToken", "IngestionService"]
