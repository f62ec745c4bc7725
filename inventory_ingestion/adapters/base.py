"""
Stream source protocol.

Contract:
    StreamSource.header() returns the raw header labels (None when the
    source has no header row). StreamSource.rows() yields one RawRow per
    data record, streaming. close() releases the underlying stream and is
    safe to call more than once.

Architecture: inventory_ingestion/adapters. Stream I/O only, no store imports.
"""

from __future__ import annotations

from typing import Any, Iterator, Protocol, runtime_checkable

from inventory_ingestion.domain.types import RawRow


@runtime_checkable
class StreamSource(Protocol):
    """Protocol for reading delimited inventory data one record at a time."""

    name: str

    def header(self) -> tuple[str, ...] | None:
        """Raw header labels, read lazily on first call."""
        ...

    def rows(self) -> Iterator[RawRow]:
        """Yield one RawRow per data record. Raises StreamReadError on I/O failure."""
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "StreamSource":
        ...

    def __exit__(self, *exc: Any) -> None:
        ...
