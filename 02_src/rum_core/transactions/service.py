"""TransactionService: drives transactions from start to flush."""

import re
from typing import Any, Callable, Protocol

from ..clock import IClock, default_clock
from ..config_service import IConfigService, Subscription
from ..constants import NAME_UNKNOWN, TRANSACTION_END, TRANSACTION_START, TYPE_CUSTOM
from ..logging_config import get_logger
from ..models import Span, Transaction, build_transaction_payload
from ..performance import PerfEntryRecorder, capture_navigation
from ..timeline import IPerformanceTimeline
from ..utils import merge
from .transport import ITransport

logger = get_logger(__name__)

TransactionListener = Callable[[Transaction], None]


class ITransactionService(Protocol):
    """Creating and finalizing transactions."""

    def start_transaction(
        self,
        name: str | None = None,
        type: str | None = None,
        managed: bool = False,
        start_time: float | None = None,
    ) -> Transaction:
        """Create a transaction and make it current."""
        ...

    def start_span(self, name: str | None, type: str | None) -> Span | None:
        """Start a span on the current transaction."""
        ...

    def get_current_transaction(self) -> Transaction | None:
        """The most recently started transaction, if any."""
        ...


class TransactionService:
    """Wires the recorder and the capture engine into transaction lifecycles."""

    def __init__(
        self,
        config: IConfigService,
        recorder: PerfEntryRecorder,
        timeline: IPerformanceTimeline,
        transport: ITransport | None = None,
        clock: IClock | None = None,
    ):
        self._config = config
        self._recorder = recorder
        self._timeline = timeline
        self._transport = transport
        self._clock = clock or default_clock()
        self._current: Transaction | None = None
        self._listeners: dict[str, Subscription] = {
            TRANSACTION_START: Subscription(),
            TRANSACTION_END: Subscription(),
        }

    def subscribe(self, event: str, listener: TransactionListener) -> Callable[[], None]:
        """Listen for `transaction:start` / `transaction:end`."""
        if event not in self._listeners:
            raise ValueError(f"Unknown transaction event: {event}")
        return self._listeners[event].subscribe(listener)

    def get_current_transaction(self) -> Transaction | None:
        return self._current

    def start_transaction(
        self,
        name: str | None = None,
        type: str | None = None,
        managed: bool = False,
        start_time: float | None = None,
    ) -> Transaction:
        sample_rate = self._config.get("transactionSampleRate")
        if not isinstance(sample_rate, (int, float)):
            sample_rate = 1.0

        transaction = Transaction(
            name or NAME_UNKNOWN,
            type or TYPE_CUSTOM,
            managed=managed,
            sample_rate=sample_rate,
            start_time=start_time,
            clock=self._clock,
        )
        self._current = transaction
        logger.debug("Started %s transaction %s (managed=%s)", transaction.type, transaction.name, managed)

        self._recorder.start(transaction)
        transaction.on_finish(self._handle_finish)
        self._listeners[TRANSACTION_START].apply_all(transaction)
        return transaction

    def start_span(self, name: str | None, type: str | None, **options: Any) -> Span | None:
        if self._current is None:
            return None
        return self._current.start_span(name, type, **options)

    def _handle_finish(self, transaction: Transaction) -> None:
        """Reconcile, stop observing, then flush or discard."""
        capture_navigation(transaction, self._timeline, self._config.get("ignoreUrls") or ())
        self._recorder.stop(transaction)
        if self._current is transaction:
            self._current = None

        self._listeners[TRANSACTION_END].apply_all(transaction)
        self._submit(transaction)

    def _discard_reason(self, transaction: Transaction) -> str | None:
        if not transaction.sampled:
            return "unsampled"

        for pattern in self._config.get("ignoreTransactions") or []:
            if isinstance(pattern, re.Pattern):
                if pattern.search(transaction.name):
                    return "ignored name"
            elif pattern == transaction.name:
                return "ignored name"

        threshold = self._config.get("transactionDurationThreshold")
        duration = transaction.duration()
        if isinstance(threshold, (int, float)) and duration is not None and duration > threshold:
            return f"duration {duration:.0f}ms over threshold"
        return None

    def _submit(self, transaction: Transaction) -> None:
        reason = self._discard_reason(transaction)
        if reason:
            logger.debug(
                "Discarding transaction %s: %s", transaction.name, reason, extra={"transaction_id": transaction.id}
            )
            transaction.discard()
            return

        payload = build_transaction_payload(transaction)
        # user/custom/tags set on the config apply to every transaction
        context = merge(self._config.get("context"), payload.get("context"))
        if context:
            payload["context"] = context

        payload = self._config.apply_filters(payload)
        if not payload:
            logger.debug("Transaction %s dropped by filters", transaction.name)
            transaction.discard()
            return

        if self._transport is not None:
            self._transport.send_transaction(payload)
        transaction.mark_flushed()
        logger.info(
            "Flushed %s transaction %s with %s spans",
            transaction.type,
            transaction.name,
            len(transaction.spans),
            extra={"transaction_id": transaction.id, "trace_id": transaction.trace_id},
        )
