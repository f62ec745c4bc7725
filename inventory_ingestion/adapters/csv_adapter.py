"""
CSV stream source.

Uses csv.reader over a text stream (binary streams are wrapped). Drops a
leading BOM (utf-8-sig for bytes, stripped from the first line for text),
handles CRLF or LF line endings and standard quoting. Streams rows; never
loads the whole file.

Blank records are skipped and do not advance the row index. When a header
label repeats, the first column wins. Short records yield None for the
missing cells; extra cells are ignored.
"""

from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from typing import IO, Any, Callable, Iterator

from inventory_config.schema import DEFAULT_MAX_FILE_BYTES
from inventory_kernel.exceptions import SourceTooLargeError, StreamReadError
from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.types import RawRow

logger = get_logger("ingestion.csv_source")

_UNREAD = object()


def _get_encoding(encoding: str) -> str:
    if encoding.lower().replace("_", "-") in ("utf-8", "utf8"):
        return "utf-8-sig"  # Strip BOM if present
    return encoding


def _without_bom(lines: Iterator[str]) -> Iterator[str]:
    """Yield ``lines`` with a leading BOM removed from the first one."""
    first = True
    for line in lines:
        if first:
            line = line.lstrip("\ufeff")
            first = False
        yield line


def _is_blank(record: list[str]) -> bool:
    return not any(cell.strip() for cell in record)


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("source_delete_failed", extra={"path": str(path), "error_msg": str(exc)})
    else:
        logger.debug("source_deleted", extra={"path": str(path)})


class CsvStreamSource:
    """StreamSource over a CSV text or binary stream."""

    def __init__(
        self,
        stream: IO[Any],
        name: str = "<stream>",
        *,
        encoding: str = "utf-8",
        delimiter: str = ",",
        on_close: Callable[[], None] | None = None,
    ):
        if isinstance(stream, io.TextIOBase):
            self._stream: IO[str] = stream
        else:
            self._stream = io.TextIOWrapper(stream, encoding=_get_encoding(encoding), newline="")
        self.name = name
        # Text streams may still carry a BOM; it must go before csv sees the quotes
        self._reader = csv.reader(_without_bom(iter(self._stream)), delimiter=delimiter)
        self._on_close = on_close
        self._header: Any = _UNREAD
        self._rows_read = 0
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        *,
        encoding: str = "utf-8",
        delimiter: str = ",",
        max_bytes: int | None = DEFAULT_MAX_FILE_BYTES,
        delete_on_close: bool = False,
    ) -> CsvStreamSource:
        """
        Open a CSV file.

        Raises SourceTooLargeError when the file exceeds ``max_bytes``. With
        ``delete_on_close`` the file is removed when the source closes, and
        also when it is rejected for size.
        """
        path = Path(path)
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            if delete_on_close:
                _remove_file(path)
            raise SourceTooLargeError(path.name, size, max_bytes)
        stream = path.open("r", encoding=_get_encoding(encoding), newline="")
        on_close = (lambda: _remove_file(path)) if delete_on_close else None
        return cls(stream, path.name, encoding=encoding, delimiter=delimiter, on_close=on_close)

    @classmethod
    def from_text(cls, text: str, name: str = "<text>", *, delimiter: str = ",") -> CsvStreamSource:
        return cls(io.StringIO(text, newline=""), name, delimiter=delimiter)

    @property
    def rows_read(self) -> int:
        return self._rows_read

    @property
    def closed(self) -> bool:
        return self._closed

    def _next_record(self) -> list[str] | None:
        """Next non-blank record, or None at end of stream."""
        while True:
            try:
                record = next(self._reader)
            except StopIteration:
                return None
            except (csv.Error, UnicodeDecodeError, OSError, ValueError) as exc:
                raise StreamReadError(self.name, self._rows_read, str(exc)) from exc
            if not _is_blank(record):
                return record

    def header(self) -> tuple[str, ...] | None:
        if self._header is _UNREAD:
            record = self._next_record()
            self._header = tuple(record) if record is not None else None
        return self._header

    def rows(self) -> Iterator[RawRow]:
        labels = self.header()
        if labels is None:
            return
        while True:
            record = self._next_record()
            if record is None:
                return
            row: RawRow = {}
            for position, label in enumerate(labels):
                if label not in row:
                    row[label] = record[position] if position < len(record) else None
            self._rows_read += 1
            yield row

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.close()
        finally:
            if self._on_close is not None:
                self._on_close()

    def __enter__(self) -> CsvStreamSource:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
