"""
Injectable time sources.

An ingestion reads time for two things: wall-clock stamps on its report
(``now``) and elapsed time for its deadline (``monotonic``). Both come from
the Clock handed to IngestionService, so a test can pin report timestamps
and expire a timeout without sleeping.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""

    def monotonic(self) -> float:
        """Seconds from an arbitrary origin, never going backwards."""
        return time.monotonic()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``advance()`` moves both readings, so a deadline derived from
    ``monotonic()`` expires exactly when the test says it does.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._start = fixed_time or DEFAULT_TEST_TIME
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    def set_time(self, time: datetime) -> None:
        """Jump the wall clock. The monotonic reading is unaffected."""
        self._start = time - timedelta(seconds=self._elapsed)

    def advance(self, seconds: float = 1) -> None:
        if seconds < 0:
            raise ValueError("A clock cannot be advanced backwards")
        self._elapsed += seconds

    def tick(self) -> datetime:
        self.advance(1)
        return self.now()
