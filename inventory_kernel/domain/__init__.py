"""Pure domain primitives shared across inventory packages. ZERO I/O."""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import ValidationError

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ValidationError",
]
