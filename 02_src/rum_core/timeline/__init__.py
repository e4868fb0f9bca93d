"""Performance timeline module."""

from .timeline import (
    EntryKind,
    IPerformanceObserver,
    IPerformanceTimeline,
    InMemoryTimeline,
    PerformanceEntry,
    PerformanceEntryList,
    TimelineObserver,
)

__all__ = [
    "EntryKind",
    "IPerformanceObserver",
    "IPerformanceTimeline",
    "InMemoryTimeline",
    "PerformanceEntry",
    "PerformanceEntryList",
    "TimelineObserver",
]
