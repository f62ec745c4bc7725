"""
Cooperative cancellation for ingestion calls.

The orchestrator checks its token before pulling each row from the stream
and before each upsert, so a cancelled ingestion never leaves a row
half-validated and never issues a write after the cancellation point.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from inventory_kernel.exceptions import IngestionCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag with an optional deadline.

    A token may be linked to a parent; it reports cancelled when either it or
    its parent is cancelled.
    """

    def __init__(
        self,
        timeout: float | None = None,
        parent: CancellationToken | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._parent = parent
        self._monotonic = monotonic
        self._deadline = monotonic() + timeout if timeout is not None else None

    @classmethod
    def linked(
        cls,
        parent: CancellationToken | None,
        timeout: float | None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> CancellationToken:
        """Token honouring ``parent`` (if any) plus its own ``timeout``."""
        if parent is not None and timeout is None:
            return parent
        return cls(timeout=timeout, parent=parent, monotonic=monotonic)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        with self._lock:
            if not self._event.is_set():
                self._reason = reason
                self._event.set()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    @property
    def reason(self) -> str | None:
        if self._event.is_set():
            return self._reason
        if self._deadline is not None and self._monotonic() >= self._deadline:
            return "timeout exceeded"
        if self._parent is not None:
            return self._parent.reason
        return None

    def raise_if_cancelled(self) -> None:
        reason = self.reason
        if reason is not None:
            raise IngestionCancelledError(reason)
