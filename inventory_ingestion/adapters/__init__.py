"""Stream sources: protocol and CSV implementation."""

from inventory_ingestion.adapters.base import StreamSource
from inventory_ingestion.adapters.csv_adapter import CsvStreamSource

__all__ = ["CsvStreamSource", "StreamSource"]
