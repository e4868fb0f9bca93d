"""Navigation capture: turn host timing samples into transaction spans.

Runs once per managed transaction, when it finishes. Page-load
transactions get the hard-navigation phase spans and page-load marks;
every managed transaction gets resource and user timing spans.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..constants import (
    EXTERNAL_HTTP,
    FIRST_CONTENTFUL_PAINT,
    MAX_SPAN_DURATION,
    MEASURE,
    NAVIGATION_TIMING_TYPE,
    PAGE_LOAD,
    PAINT,
    RESOURCE,
    RESOURCE_TYPE,
    USER_TIMING_THRESHOLD,
    USER_TIMING_TYPE,
)
from ..logging_config import get_logger
from ..models import Span, Transaction
from ..timeline import IPerformanceTimeline, PerformanceEntry
from ..utils import is_valid_timing, strip_query_string

logger = get_logger(__name__)

# (start field, end field, span name); the parsing phase falls back to
# responseEnd when the host does not report domLoading
NAVIGATION_PHASES = (
    ("requestStart", "responseEnd", "Requesting and receiving the document"),
    ("domLoading", "domInteractive", "Parsing the document, executing sync. scripts"),
    (
        "domContentLoadedEventStart",
        "domContentLoadedEventEnd",
        'Fire "DOMContentLoaded" event',
    ),
    ("loadEventStart", "loadEventEnd", 'Fire "load" event'),
)

NAVIGATION_TIMING_MARKS = (
    "fetchStart",
    "domainLookupStart",
    "domainLookupEnd",
    "connectStart",
    "connectEnd",
    "requestStart",
    "responseStart",
    "responseEnd",
    "domLoading",
    "domInteractive",
    "domContentLoadedEventStart",
    "domContentLoadedEventEnd",
    "domComplete",
    "loadEventStart",
    "loadEventEnd",
)


def should_create_span(
    start: Any,
    end: Any,
    tr_start: float,
    tr_end: float,
    base_time: float = 0,
) -> bool:
    """Both bounds valid, ordered, inside the transaction and not absurdly long."""
    if not (is_valid_timing(start) and is_valid_timing(end)):
        return False
    return (
        start >= base_time
        and end >= start
        and start - base_time >= tr_start
        and end - base_time <= tr_end
        and end - start < MAX_SPAN_DURATION
        and start - base_time < MAX_SPAN_DURATION
        and end - base_time < MAX_SPAN_DURATION
    )


def fit_to_window(
    start: Any,
    end: Any,
    tr_start: float,
    tr_end: float,
) -> tuple[float, float] | None:
    """Clip `[start, end]` to the transaction window.

    Returns None when the bounds are invalid, the interval lies entirely
    outside the window, or it is longer than the maximum span duration.
    """
    if not (is_valid_timing(start) and is_valid_timing(end)) or end < start:
        return None
    if end - start >= MAX_SPAN_DURATION:
        return None
    if end < tr_start or start > tr_end:
        return None
    return max(start, tr_start), min(end, tr_end)


def create_navigation_timing_spans(
    timings: Mapping[str, Any] | None,
    base_time: Any,
    tr_start: float,
    tr_end: float,
) -> list[Span]:
    """Phase spans for a page load, relative to `base_time` (fetchStart)."""
    if not timings or not is_valid_timing(base_time):
        return []

    spans = []
    for start_key, end_key, name in NAVIGATION_PHASES:
        start = timings.get(start_key)
        if start_key == "domLoading" and start is None:
            start = timings.get("responseEnd")
        end = timings.get(end_key)
        if not should_create_span(start, end, tr_start, tr_end, base_time):
            continue

        data = None
        if start_key == "requestStart" and timings.get("url"):
            data = {"url": timings["url"]}

        span = Span(name, NAVIGATION_TIMING_TYPE, start_time=start - base_time)
        span.end(end - base_time, data)
        spans.append(span)
    return spans


def _is_ignored(url: str, ignore_urls: Iterable[Any]) -> bool:
    for pattern in ignore_urls:
        if hasattr(pattern, "search"):
            if pattern.search(url):
                return True
        elif pattern and str(pattern) in url:
            return True
    return False


def create_resource_timing_span(entry: PerformanceEntry, start: float, end: float) -> Span:
    url = entry["name"]
    initiator_type = entry.get("initiatorType")
    kind = f"{RESOURCE_TYPE}.{initiator_type}" if initiator_type else RESOURCE_TYPE
    span = Span(strip_query_string(url), kind, start_time=start)
    span.end(end, {"url": url, "entry": entry})
    return span


def create_resource_timing_spans(
    entries: Sequence[PerformanceEntry],
    ignore_urls: Iterable[Any],
    tr_start: float,
    tr_end: float,
) -> list[Span]:
    """Spans for sub-resource fetches that fall within the transaction."""
    ignore_urls = list(ignore_urls)
    spans = []
    for entry in entries:
        url = entry.get("name")
        if not url or not isinstance(url, str):
            continue
        if _is_ignored(url, ignore_urls):
            continue

        window = fit_to_window(entry.get("startTime"), entry.get("responseEnd"), tr_start, tr_end)
        if window is None:
            continue
        spans.append(create_resource_timing_span(entry, *window))
    return spans


def create_user_timing_spans(
    entries: Sequence[PerformanceEntry],
    tr_start: float,
    tr_end: float,
) -> list[Span]:
    """Spans for application `measure` entries."""
    spans = []
    for entry in entries:
        start = entry.get("startTime")
        duration = entry.get("duration")
        if not (is_valid_timing(start) and is_valid_timing(duration)):
            continue
        if duration <= USER_TIMING_THRESHOLD:
            continue

        window = fit_to_window(start, start + duration, tr_start, tr_end)
        if window is None:
            continue
        span = Span(entry.get("name"), USER_TIMING_TYPE, start_time=window[0])
        span.end(window[1])
        spans.append(span)
    return spans


def get_navigation_timing_marks(timings: Mapping[str, Any] | None) -> dict[str, float] | None:
    """Each reported Level 1 timing as an offset from fetchStart."""
    if not timings:
        return None
    fetch_start = timings.get("fetchStart")
    response_start = timings.get("responseStart")
    response_end = timings.get("responseEnd")
    navigation_start = timings.get("navigationStart", fetch_start)
    if not all(is_valid_timing(v) for v in (fetch_start, response_start, response_end, navigation_start)):
        return None
    if not (fetch_start >= navigation_start and response_start >= fetch_start and response_end >= response_start):
        return None

    marks = {}
    for key in NAVIGATION_TIMING_MARKS:
        value = timings.get(key)
        if is_valid_timing(value) and value and value >= fetch_start:
            marks[key] = value - fetch_start
    return marks


def get_page_load_marks(
    timings: Mapping[str, Any] | None,
    paint_entries: Sequence[PerformanceEntry] = (),
) -> dict | None:
    navigation_marks = get_navigation_timing_marks(timings)
    if navigation_marks is None:
        return None

    agent = {
        "timeToFirstByte": navigation_marks.get("responseStart"),
        "domInteractive": navigation_marks.get("domInteractive"),
        "domComplete": navigation_marks.get("domComplete"),
    }
    for entry in paint_entries:
        if entry.get("name") == FIRST_CONTENTFUL_PAINT and is_valid_timing(entry.get("startTime")):
            # paint entries are relative to the time origin, marks to fetchStart
            offset = timings["fetchStart"] - timings.get("navigationStart", timings["fetchStart"])
            agent["firstContentfulPaint"] = max(entry["startTime"] - offset, 0)

    return {
        "navigationTiming": navigation_marks,
        "agent": {key: value for key, value in agent.items() if value is not None},
    }


def _is_tracked(span: Span, existing: Sequence[Span]) -> bool:
    """Whether instrumentation already recorded the request behind `span`."""
    url = (span.context or {}).get("http", {}).get("url")
    for other in existing:
        if other.name == span.name:
            return True
        if url and other.full_type.startswith(EXTERNAL_HTTP):
            if (other.context or {}).get("http", {}).get("url") == url:
                return True
    return False


def _correct_page_load_start(transaction: Transaction, new_start: float) -> None:
    """Move the start to the navigation origin, keeping custom marks in place."""
    delta = transaction.start - new_start
    custom = (transaction.marks or {}).get("custom")
    if custom and delta:
        for key in list(custom):
            custom[key] += delta
    transaction.start = new_start


def capture_navigation(
    transaction: Transaction,
    timeline: IPerformanceTimeline,
    ignore_urls: Iterable[Any] = (),
) -> None:
    """Reconcile buffered timeline samples into `transaction.spans`.

    Only the first call for a transaction has an effect.
    """
    if not transaction.managed or transaction.captured:
        return

    tr_end = transaction.end_time
    if tr_end is None:
        logger.warning("Capture requested for transaction %s before it ended", transaction.name)
        return
    transaction.captured = True

    captured: list[Span] = []
    if transaction.type == PAGE_LOAD:
        _correct_page_load_start(transaction, 0)
        timings = timeline.timing
        fetch_start = timings.get("fetchStart") if timings else None
        captured.extend(create_navigation_timing_spans(timings, fetch_start, transaction.start, tr_end))

        marks = get_page_load_marks(timings, timeline.get_entries_by_type(PAINT))
        if marks:
            transaction.add_marks(marks)

    tr_start = transaction.start
    existing = list(transaction.spans)
    for span in create_resource_timing_spans(
        timeline.get_entries_by_type(RESOURCE), ignore_urls, tr_start, tr_end
    ):
        if _is_tracked(span, existing):
            continue
        captured.append(span)

    captured.extend(create_user_timing_spans(timeline.get_entries_by_type(MEASURE), tr_start, tr_end))

    transaction.attach_captured_spans(captured)
    logger.debug("Captured %s spans for %s transaction %s", len(captured), transaction.type, transaction.name)
