"""Clocks producing time-origin-relative timestamps in milliseconds."""

import time
from typing import Protocol


class IClock(Protocol):
    """Monotonic clock relative to a fixed time origin."""

    def now(self) -> float:
        """Milliseconds elapsed since the time origin."""
        ...


class PerformanceClock:
    """Clock backed by `time.perf_counter`, origin at construction."""

    def __init__(self, origin: float | None = None):
        self._origin = time.perf_counter() if origin is None else origin

    @property
    def origin(self) -> float:
        return self._origin

    def now(self) -> float:
        return (time.perf_counter() - self._origin) * 1000.0


_default_clock = PerformanceClock()


def default_clock() -> IClock:
    """Process-wide clock shared by objects that were not given one."""
    return _default_clock
