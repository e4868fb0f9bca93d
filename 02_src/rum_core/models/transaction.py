"""Transaction data model: owns spans and marks, tracks pending tasks."""

import asyncio
import random
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable

from ..constants import TRUNCATED_TYPE
from ..logging_config import get_logger
from ..utils import generate_random_id, merge, remove_invalid_chars
from .span import Span, SpanBase

logger = get_logger(__name__)

TaskId = str | int
FinishCallback = Callable[["Transaction"], None]


class TransactionState(str, Enum):
    """Transaction lifecycle states."""

    OPEN = "open"
    ENDED = "ended"
    FINISHED = "finished"
    FLUSHED = "flushed"
    DISCARDED = "discarded"


_FINISHED_STATES = (
    TransactionState.FINISHED,
    TransactionState.FLUSHED,
    TransactionState.DISCARDED,
)


class Transaction(SpanBase):
    """A named, typed root unit of work.

    Lifecycle: OPEN -> ENDED -> FINISHED -> FLUSHED | DISCARDED. `end()`
    moves to ENDED; the move to FINISHED happens once no pending tasks
    remain, and fires the finish callbacks exactly once.
    """

    def __init__(
        self,
        name: str | None,
        type: str | None,
        *,
        managed: bool = False,
        sample_rate: float = 1.0,
        **kwargs: Any,
    ):
        kwargs.setdefault("trace_id", generate_random_id())
        if "sampled" not in kwargs:
            kwargs["sampled"] = sample_rate >= 1 or random.random() < sample_rate
        super().__init__(name, type, **kwargs)
        self.managed = managed
        self.spans: list[Span] = []
        self.marks: dict | None = None
        self.state = TransactionState.OPEN
        # set by the capture engine once reconciliation has run
        self.captured = False
        self._active_spans: dict[str, Span] = {}
        self._scheduled_tasks: list[TaskId] = []
        self._next_auto_task_id = 1
        self._finish_callbacks: list[FinishCallback] = []
        self._finished_event: asyncio.Event | None = None

    # Spans

    def start_span(
        self,
        name: str | None,
        type: str | None,
        *,
        start_time: float | None = None,
        sync: bool | None = None,
        parent_id: str | None = None,
    ) -> Span | None:
        """Open a span; it is appended to `spans` when it ends."""
        if self.state is not TransactionState.OPEN:
            logger.debug("Transaction %s is %s, span %s not started", self.name, self.state.value, name)
            return None

        span = Span(
            name,
            type,
            start_time=start_time,
            sync=sync,
            parent_id=parent_id or self.id,
            transaction_id=self.id,
            trace_id=self.trace_id,
            sampled=self.sampled,
            clock=self.clock,
            on_end=self._on_span_end,
        )
        self._active_spans[span.id] = span
        return span

    def add_span(self, span: Span) -> bool:
        """Append an already timed span; rejected once the transaction ended."""
        if self.state is not TransactionState.OPEN:
            logger.debug("Transaction %s is %s, span %s rejected", self.name, self.state.value, span.name)
            return False
        if span.transaction_id not in (None, self.id):
            logger.warning("Span %s belongs to another transaction", span.name)
            return False
        self._adopt(span)
        self.spans.append(span)
        return True

    def attach_captured_spans(self, spans: list[Span]) -> None:
        """Append spans synthesized during reconciliation.

        Reconciliation runs when the transaction finishes, so it bypasses
        the OPEN-only rule of `add_span`.
        """
        for span in spans:
            self._adopt(span)
            self.spans.append(span)

    def _adopt(self, span: Span) -> None:
        span.transaction_id = self.id
        span.parent_id = span.parent_id or self.id
        span.trace_id = self.trace_id
        span.sampled = self.sampled

    def _on_span_end(self, span: SpanBase) -> None:
        self._active_spans.pop(span.id, None)
        if self.state is TransactionState.OPEN:
            self.spans.append(span)

    # Marks

    def add_marks(self, marks: Mapping) -> None:
        self.marks = merge(self.marks, marks)

    def mark(self, key: str) -> None:
        """Record a custom mark at the current offset from `start`."""
        skey = remove_invalid_chars(key)
        self.add_marks({"custom": {skey: self.clock.now() - self.start}})

    # Pending tasks

    def add_task(self, task_id: TaskId | None = None) -> TaskId:
        if task_id is None:
            task_id = f"task{self._next_auto_task_id}"
            self._next_auto_task_id += 1
        if task_id not in self._scheduled_tasks:
            self._scheduled_tasks.append(task_id)
        return task_id

    def remove_task(self, task_id: TaskId) -> None:
        if task_id in self._scheduled_tasks:
            self._scheduled_tasks.remove(task_id)
        self.detect_finish()

    @property
    def pending_tasks(self) -> int:
        return len(self._scheduled_tasks)

    # Lifecycle

    def end(self, end_time: float | None = None) -> None:
        if self.state is not TransactionState.OPEN:
            return
        self.end_time = max(self.clock.now() if end_time is None else end_time, self.start)

        # Spans still open are cut at the transaction end
        for span in list(self._active_spans.values()):
            span.type = span.type + TRUNCATED_TYPE
            span.end(self.end_time)

        self.state = TransactionState.ENDED
        self.detect_finish()

    def detect_finish(self) -> None:
        """Finish once ended and no tasks are pending."""
        if self.state is not TransactionState.ENDED or self._scheduled_tasks:
            return

        self.state = TransactionState.FINISHED
        callbacks, self._finish_callbacks = self._finish_callbacks, []
        for callback in callbacks:
            self._run_finish_callback(callback)

        if self._finished_event is not None:
            self._finished_event.set()

    def on_finish(self, callback: FinishCallback) -> None:
        """Run `callback` when the transaction finishes (immediately if it has)."""
        if self.is_finished():
            self._run_finish_callback(callback)
        else:
            self._finish_callbacks.append(callback)

    def _run_finish_callback(self, callback: FinishCallback) -> None:
        try:
            callback(self)
        except Exception as e:
            logger.error("Finish callback failed for %s: %s", self.name, e, exc_info=True)

    async def wait_finished(self) -> "Transaction":
        """Wait until the pending-task count has drained after `end()`."""
        if not self.is_finished():
            if self._finished_event is None:
                self._finished_event = asyncio.Event()
            await self._finished_event.wait()
        return self

    def is_finished(self) -> bool:
        return self.state in _FINISHED_STATES

    def mark_flushed(self) -> None:
        if self.state is TransactionState.FINISHED:
            self.state = TransactionState.FLUSHED

    def discard(self) -> None:
        if self.state is TransactionState.FINISHED:
            self.state = TransactionState.DISCARDED
