"""Agent bootstrap and public API."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Protocol

from .clock import IClock, PerformanceClock
from .config import DEFAULT_ENV_FILE
from .config_service import ConfigService
from .constants import PAGE_LOAD
from .logging_config import apply_agent_log_level, get_logger
from .models import Span, Transaction
from .performance import PerfEntryRecorder
from .timeline import IPerformanceTimeline, InMemoryTimeline
from .transactions import ITransport, PayloadQueue, TransactionListener, TransactionService

logger = get_logger(__name__)

PAGE_LOAD_TASK = "page-load"


class IAgent(Protocol):
    """Bootstrap and public API."""

    def init(self, config: Mapping[str, Any] | None = None) -> "IAgent":
        """Initialize components and apply `config`."""
        ...

    def start_transaction(
        self, name: str | None = None, type: str | None = None, managed: bool = False
    ) -> Transaction | None:
        """Start a transaction; None while the agent is inactive."""
        ...

    def start_span(self, name: str | None = None, type: str | None = None) -> Span | None:
        """Start a span on the current transaction."""
        ...


class Agent:
    """RUM agent: owns the components and their start-up order."""

    def __init__(
        self,
        timeline: IPerformanceTimeline | None = None,
        transport: ITransport | None = None,
        clock: IClock | None = None,
        env_file: str | Path | None = None,
    ):
        self._env_file = DEFAULT_ENV_FILE if env_file is None else env_file
        self._clock = clock or PerformanceClock()

        # 1. Config (no dependencies)
        self._config = ConfigService()
        self._config.subscribe_to_change(apply_agent_log_level)

        # 2. Host timeline (no internal dependencies)
        self._timeline = timeline or InMemoryTimeline()

        # 3. Recorder (depends on timeline)
        self._recorder = PerfEntryRecorder(self._timeline)

        # 4. Transport (config drives the queue limit)
        self._transport = transport or PayloadQueue()

        # 5. TransactionService (depends on all of the above)
        self._transaction_service = TransactionService(
            self._config,
            self._recorder,
            self._timeline,
            transport=self._transport,
            clock=self._clock,
        )
        self._initialized = False

    def init(self, config: Mapping[str, Any] | None = None) -> "Agent":
        if self._initialized:
            return self
        self._initialized = True

        self._config.init(self._env_file)
        self.config(config)
        if isinstance(self._transport, PayloadQueue):
            try:
                self._transport.set_limit(int(self._config.get("queueLimit")))
            except (TypeError, ValueError):
                logger.warning("Invalid queueLimit %r", self._config.get("queueLimit"))

        if not self.is_active():
            logger.info("RUM agent is inactive")
            return self

        if self._config.get("capturePageLoad") and self._config.get("sendPageLoadTransaction"):
            self._start_page_load()
        logger.info("RUM agent initialized for %s", self._config.get("serviceName"))
        return self

    def config(self, config: Mapping[str, Any] | None = None) -> None:
        """Merge `config` into the settings; deactivate if the result is unusable."""
        self._config.set_config(config)
        problems = self._config.validate()
        if problems:
            logger.error("RUM Agent isn't correctly configured: %s", " ".join(problems))
            self._config.set_config({"active": False})

    def is_active(self) -> bool:
        return self._config.is_active()

    def _start_page_load(self) -> Transaction:
        name = self._config.get("pageLoadTransactionName") or None
        # Starts at agent init, which lags the navigation; capture moves it
        transaction = self._transaction_service.start_transaction(name, PAGE_LOAD, managed=True)
        transaction.add_task(PAGE_LOAD_TASK)
        return transaction

    def page_loaded(self, end_time: float | None = None) -> None:
        """Host signal equivalent to the document `load` event."""
        transaction = self._transaction_service.get_current_transaction()
        if transaction is None or transaction.type != PAGE_LOAD:
            return
        transaction.end(end_time)
        transaction.remove_task(PAGE_LOAD_TASK)

    def start_transaction(
        self,
        name: str | None = None,
        type: str | None = None,
        managed: bool = False,
    ) -> Transaction | None:
        if not self.is_active():
            return None
        return self._transaction_service.start_transaction(name, type, managed=managed)

    def start_span(self, name: str | None = None, type: str | None = None, **options: Any) -> Span | None:
        if not self.is_active():
            return None
        return self._transaction_service.start_span(name, type, **options)

    def get_current_transaction(self) -> Transaction | None:
        return self._transaction_service.get_current_transaction()

    def observe(self, event: str, listener: TransactionListener) -> Callable[[], None]:
        """Listen for transaction lifecycle events; returns the unsubscribe handle."""
        return self._transaction_service.subscribe(event, listener)

    def add_filter(self, fn) -> None:
        self._config.add_filter(fn)

    def set_user_context(self, user: Mapping[str, Any]) -> None:
        self._config.set_user_context(user)

    def set_custom_context(self, custom: Any) -> None:
        self._config.set_custom_context(custom)

    def add_labels(self, labels: Mapping[str, Any]) -> None:
        self._config.add_tags(labels)

    def set_initial_page_load_name(self, name: str) -> None:
        self._config.set_config({"pageLoadTransactionName": name})

    @property
    def config_service(self) -> ConfigService:
        return self._config

    @property
    def timeline(self) -> IPerformanceTimeline:
        return self._timeline

    @property
    def transport(self) -> ITransport:
        return self._transport

    @property
    def transaction_service(self) -> TransactionService:
        return self._transaction_service
