"""Records long task and LCP entries for the lifetime of a transaction."""

from collections.abc import Sequence

from ..constants import LARGEST_CONTENTFUL_PAINT, LONG_TASK, PAGE_LOAD
from ..logging_config import get_logger
from ..models import Span, Transaction
from ..timeline import (
    EntryKind,
    IPerformanceObserver,
    IPerformanceTimeline,
    PerformanceEntry,
    PerformanceEntryList,
)
from ..utils import is_valid_timing

logger = get_logger(__name__)


def is_managed(transaction: Transaction | None) -> bool:
    return bool(transaction is not None and transaction.managed)


def is_page_load_transaction(transaction: Transaction) -> bool:
    return transaction.type == PAGE_LOAD


def create_long_task_spans(longtasks: Sequence[PerformanceEntry]) -> list[Span]:
    """One span per long task, named after the task's origin."""
    spans = []
    for entry in longtasks:
        start = entry.get("startTime")
        duration = entry.get("duration")
        if not (is_valid_timing(start) and is_valid_timing(duration)):
            continue

        span = Span(f"Longtask({entry.get('name')})", LONG_TASK, start_time=start)

        attribution = entry.get("attribution") or []
        if attribution:
            first = attribution[0]
            # containerSrc is skipped, it can be a large url or blob
            custom = {
                "attribution": first.get("name"),
                "type": first.get("containerType"),
            }
            if first.get("containerName"):
                custom["name"] = first["containerName"]
            if first.get("containerId"):
                custom["id"] = first["containerId"]
            span.add_context({"custom": custom})

        span.end(start + duration)
        spans.append(span)
    return spans


def on_performance_entry(entry_list: PerformanceEntryList, transaction: Transaction) -> None:
    """Apply one delivered batch of entries to `transaction`."""
    for span in create_long_task_spans(entry_list.get_entries_by_type(LONG_TASK)):
        transaction.add_span(span)

    # Paint timings only describe the initial page load
    if not is_page_load_transaction(transaction):
        return

    lcp_entries = entry_list.get_entries_by_type(LARGEST_CONTENTFUL_PAINT)
    if not lcp_entries:
        return

    # Lazily loaded content can move the LCP, the last entry wins
    last = lcp_entries[-1]
    value = last.get("renderTime") or last.get("loadTime")
    if is_valid_timing(value):
        transaction.add_marks({"agent": {"largestContentfulPaint": value}})


class PerfEntryRecorder:
    """Observes timeline entry kinds on behalf of managed transactions.

    Long tasks and LCP are observed rather than queried because the host
    only delivers them to observers; resource, paint and measure entries
    are read from the timeline at capture time instead.
    """

    def __init__(self, timeline: IPerformanceTimeline):
        self._timeline = timeline
        self._observers: dict[str, IPerformanceObserver] = {}
        self._capabilities: frozenset[EntryKind] | None = None

    @property
    def capabilities(self) -> frozenset[EntryKind]:
        """Observable kinds supported by the host, probed once."""
        if self._capabilities is None:
            try:
                supported = set(self._timeline.supported_entry_types)
            except Exception as e:
                logger.debug("Timeline capability probe failed: %s", e)
                supported = set()
            self._capabilities = frozenset(kind for kind in EntryKind if kind.value in supported)
        return self._capabilities

    def start(self, transaction: Transaction) -> None:
        if not is_managed(transaction) or transaction.id in self._observers:
            return

        kinds = [EntryKind.LONG_TASK]
        if is_page_load_transaction(transaction):
            kinds.insert(0, EntryKind.LCP)

        observer = self._timeline.create_observer(
            lambda entries, _observer: on_performance_entry(entries, transaction)
        )
        self._observers[transaction.id] = observer

        for kind in kinds:
            if kind not in self.capabilities:
                logger.debug("Entry type %s not supported by host", kind.value)
                continue
            try:
                observer.observe(type=kind.value, buffered=True)
            except Exception as e:
                logger.debug("Observing %s failed: %s", kind.value, e)

    def stop(self, transaction: Transaction) -> None:
        if not is_managed(transaction):
            return
        observer = self._observers.pop(transaction.id, None)
        if observer is not None:
            observer.disconnect()

    def is_recording(self, transaction: Transaction) -> bool:
        return transaction.id in self._observers
