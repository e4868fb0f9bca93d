"""Span data model and its OPEN -> ENDED lifecycle."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable

from ..clock import IClock, default_clock
from ..constants import NAME_UNKNOWN, TYPE_CUSTOM
from ..utils import generate_random_id, get_duration, merge, set_label


class SpanState(str, Enum):
    """Span lifecycle states."""

    OPEN = "open"
    ENDED = "ended"


class SpanBase:
    """Timing, labels and context shared by spans and transactions."""

    def __init__(
        self,
        name: str | None,
        type: str | None,
        *,
        start_time: float | None = None,
        clock: IClock | None = None,
        id: str | None = None,
        trace_id: str | None = None,
        sampled: bool | None = None,
        on_end: Callable[["SpanBase"], None] | None = None,
    ):
        self.name = name or NAME_UNKNOWN
        self.type = type or TYPE_CUSTOM
        self.id = id or generate_random_id(16)
        self.trace_id = trace_id
        self.sampled = sampled
        self.context: dict | None = None
        self.labels: dict | None = None
        self._clock = clock or default_clock()
        self.start: float = self._clock.now() if start_time is None else start_time
        self.end_time: float | None = None
        self._on_end = on_end

    @property
    def ended(self) -> bool:
        return self.end_time is not None

    @property
    def clock(self) -> IClock:
        return self._clock

    def add_labels(self, labels: Mapping[str, Any]) -> None:
        if self.labels is None:
            self.labels = {}
        for key, value in labels.items():
            set_label(key, value, self.labels)

    def add_context(self, *contexts: Mapping | None) -> None:
        if not contexts:
            return
        self.context = merge(self.context, *contexts)

    def end(self, end_time: float | None = None) -> None:
        """End with `end_time` or now; a second call keeps the first end."""
        if self.ended:
            return
        end = self._clock.now() if end_time is None else end_time
        # end >= start is an invariant of every timed unit
        self.end_time = max(end, self.start)
        if self._on_end is not None:
            self._on_end(self)

    def duration(self) -> float | None:
        return get_duration(self.start, self.end_time)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, type={self.type!r}, "
            f"start={self.start!r}, end={self.end_time!r})"
        )


class Span(SpanBase):
    """A timed sub-unit of work inside a transaction."""

    def __init__(
        self,
        name: str | None,
        type: str | None,
        *,
        parent_id: str | None = None,
        transaction_id: str | None = None,
        sync: bool | None = None,
        **kwargs: Any,
    ):
        super().__init__(name, type, **kwargs)
        self.parent_id = parent_id
        self.transaction_id = transaction_id
        self.sync = sync
        self.subtype: str | None = None
        self.action: str | None = None
        if "." in self.type:
            fields = self.type.split(".", 2)
            self.type = fields[0]
            self.subtype = fields[1] or None
            if len(fields) > 2:
                self.action = fields[2] or None

    @property
    def state(self) -> SpanState:
        return SpanState.ENDED if self.ended else SpanState.OPEN

    @property
    def full_type(self) -> str:
        return ".".join(part for part in (self.type, self.subtype, self.action) if part)

    def end(self, end_time: float | None = None, data: Mapping | None = None) -> None:
        if self.ended:
            return
        super().end(end_time)
        add_span_context(self, data)


def _server_timing_header(server_timing: Any) -> str | None:
    """Render `serverTiming` entries as a Server-Timing header value."""
    if not server_timing:
        return None

    parts = []
    for timing in server_timing:
        if not isinstance(timing, Mapping) or not timing.get("name"):
            continue
        part = str(timing["name"])
        if timing.get("duration"):
            part += f";dur={timing['duration']}"
        if timing.get("description"):
            part += f';desc="{timing["description"]}"'
        parts.append(part)
    return ", ".join(parts) or None


def _response_context(entry: Mapping) -> dict:
    response: dict[str, Any] = {}
    for field, key in (
        ("transferSize", "transfer_size"),
        ("encodedBodySize", "encoded_body_size"),
        ("decodedBodySize", "decoded_body_size"),
    ):
        value = entry.get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            response[key] = value

    header = _server_timing_header(entry.get("serverTiming"))
    if header:
        response["headers"] = {"server-timing": header}
    return response


def add_span_context(span: Span, data: Mapping | None) -> None:
    """Attach HTTP context carried by `data` to an ended span.

    `data` is either {"url", "entry"} for resource timing entries or
    {"url"} (plus optional "method"/"status_code") for requests.
    """
    if not data or not data.get("url"):
        return

    http: dict[str, Any] = {"url": data["url"]}
    entry = data.get("entry")
    if isinstance(entry, Mapping):
        response = _response_context(entry)
        if response:
            http["response"] = response
    if data.get("method"):
        http["method"] = data["method"]
    if data.get("status_code") is not None:
        http["status_code"] = data["status_code"]

    span.add_context({"http": http})
