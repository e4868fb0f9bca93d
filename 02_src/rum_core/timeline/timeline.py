"""Host performance-timeline interface and an in-memory implementation."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Callable, Protocol

from ..constants import (
    LARGEST_CONTENTFUL_PAINT,
    LONG_TASK,
    MEASURE,
    NAVIGATION,
    PAINT,
    RESOURCE,
)
from ..errors import UnsupportedEntryTypeError


PerformanceEntry = Mapping[str, Any]


class EntryKind(str, Enum):
    """Entry kinds the recorder may observe."""

    LONG_TASK = LONG_TASK
    LCP = LARGEST_CONTENTFUL_PAINT


class PerformanceEntryList:
    """One delivered batch of entries, in delivery order."""

    def __init__(self, entries: Iterable[PerformanceEntry]):
        self._entries = list(entries)

    def get_entries(self) -> list[PerformanceEntry]:
        return list(self._entries)

    def get_entries_by_type(self, entry_type: str) -> list[PerformanceEntry]:
        return [e for e in self._entries if e.get("entryType") == entry_type]

    def __len__(self) -> int:
        return len(self._entries)


ObserverCallback = Callable[[PerformanceEntryList, "IPerformanceObserver"], None]


class IPerformanceObserver(Protocol):
    """Kind-filtered subscription to the timeline."""

    def observe(self, type: str, buffered: bool = False) -> None:
        """Start receiving entries of `type`; raises for unsupported kinds."""
        ...

    def disconnect(self) -> None:
        """Stop receiving entries."""
        ...


class IPerformanceTimeline(Protocol):
    """What the agent needs from the host's performance timeline."""

    @property
    def supported_entry_types(self) -> frozenset[str]:
        """Entry kinds the host can deliver to observers."""
        ...

    @property
    def timing(self) -> Mapping[str, Any] | None:
        """Level 1 navigation timing record (epoch milliseconds)."""
        ...

    def create_observer(self, callback: ObserverCallback) -> IPerformanceObserver:
        """Create an observer delivering batches to `callback`."""
        ...

    def get_entries_by_type(self, entry_type: str) -> list[PerformanceEntry]:
        """All entries of `entry_type` recorded so far."""
        ...


class TimelineObserver:
    """Observer bound to an `InMemoryTimeline`."""

    def __init__(self, timeline: "InMemoryTimeline", callback: ObserverCallback):
        self._timeline = timeline
        self._callback = callback
        self._types: set[str] = set()

    @property
    def observed_types(self) -> frozenset[str]:
        return frozenset(self._types)

    def observe(self, type: str, buffered: bool = False) -> None:
        if type not in self._timeline.supported_entry_types:
            raise UnsupportedEntryTypeError(f"Entry type {type!r} is not supported")

        self._types.add(type)
        self._timeline._attach(self)
        if buffered:
            existing = self._timeline.get_entries_by_type(type)
            if existing:
                self.deliver(existing)

    def disconnect(self) -> None:
        self._types.clear()
        self._timeline._detach(self)

    def deliver(self, entries: Iterable[PerformanceEntry]) -> None:
        matching = [e for e in entries if e.get("entryType") in self._types]
        if matching:
            self._callback(PerformanceEntryList(matching), self)


class InMemoryTimeline:
    """Timeline fed by the host application.

    Entries are plain mappings shaped like browser PerformanceEntry
    objects (`entryType`, `name`, `startTime`, `duration`, ...).
    """

    DEFAULT_SUPPORTED = frozenset(
        {LONG_TASK, LARGEST_CONTENTFUL_PAINT, RESOURCE, MEASURE, PAINT, NAVIGATION}
    )

    def __init__(
        self,
        timing: Mapping[str, Any] | None = None,
        supported_entry_types: Iterable[str] | None = None,
    ):
        self._timing = dict(timing) if timing else None
        self._supported = (
            frozenset(supported_entry_types)
            if supported_entry_types is not None
            else self.DEFAULT_SUPPORTED
        )
        self._entries: list[PerformanceEntry] = []
        self._observers: list[TimelineObserver] = []

    @property
    def supported_entry_types(self) -> frozenset[str]:
        return self._supported

    @property
    def timing(self) -> Mapping[str, Any] | None:
        return self._timing

    def set_timing(self, timing: Mapping[str, Any] | None) -> None:
        self._timing = dict(timing) if timing else None

    def create_observer(self, callback: ObserverCallback) -> TimelineObserver:
        return TimelineObserver(self, callback)

    def get_entries_by_type(self, entry_type: str) -> list[PerformanceEntry]:
        return [e for e in self._entries if e.get("entryType") == entry_type]

    def add_entries(self, entries: Iterable[PerformanceEntry]) -> None:
        """Record entries and deliver them as one batch to each observer."""
        batch = [e for e in entries if isinstance(e, Mapping)]
        self._entries.extend(batch)
        for observer in list(self._observers):
            observer.deliver(batch)

    def clear(self) -> None:
        self._entries.clear()

    def _attach(self, observer: TimelineObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def _detach(self, observer: TimelineObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
