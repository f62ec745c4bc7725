"""Header normalization and row decoding (pure transformations)."""

from inventory_ingestion.mapping.decoder import CoercionResult, decode_row, parse_number
from inventory_ingestion.mapping.headers import (
    HeaderMapping,
    HeaderSynonyms,
    ResolvedColumn,
    normalize_header,
    resolve_headers,
)

__all__ = [
    "CoercionResult",
    "HeaderMapping",
    "HeaderSynonyms",
    "ResolvedColumn",
    "decode_row",
    "normalize_header",
    "parse_number",
    "resolve_headers",
]
