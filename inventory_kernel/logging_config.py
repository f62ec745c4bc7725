"""
Structured JSON logging for the inventory ingestion system.

Every record is emitted as one JSON line. Fields bound through
``LogContext`` (the ingestion batch id, the source name, the producing
component) are merged into each line written while they are bound, so a
single ingestion can be followed across modules by ``correlation_id``.

Call sites pass structured data through ``extra``::

    logger.info("row_rejected", extra={"row_index": 4, "error_code": "INVALID_NUMBER"})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "level_from_name",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "inventory"

CONTEXT_FIELDS = ("correlation_id", "source", "producer", "operator")


class LogContext:
    """Context-local log fields, safe across threads and asyncio tasks."""

    _fields: ContextVar[Mapping[str, str]] = ContextVar("inventory_log_fields", default={})

    @staticmethod
    def _check(names) -> None:
        unknown = set(names) - set(CONTEXT_FIELDS)
        if unknown:
            raise KeyError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update context fields. None values leave the current value in place."""
        cls._check(fields)
        merged = dict(cls._fields.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        cls._fields.set(merged)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = cls._fields.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block, then restore."""
        cls._check(fields)
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> type[LogContext]:
        merged = dict(LogContext._fields.get())
        merged.update({k: v for k, v in self._fields.items() if v is not None})
        self._token = LogContext._fields.set(merged)
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            LogContext._fields.reset(self._token)
            self._token = None


# Attributes every LogRecord carries; anything else came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, val)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # InventoryError subclasses carry their details as public attributes
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the inventory namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def level_from_name(name: str) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the inventory logger. Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)
    logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
