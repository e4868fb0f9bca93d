"""RUM core: client-side tracing engine."""

from .app import Agent, IAgent
from .clock import IClock, PerformanceClock
from .config_service import ConfigService, IConfigService
from .errors import InvalidArgumentError, UnsupportedEntryTypeError
from .models import (
    Span,
    SpanState,
    Transaction,
    TransactionState,
    build_transaction_payload,
)
from .performance import PerfEntryRecorder, capture_navigation, on_performance_entry
from .timeline import EntryKind, IPerformanceTimeline, InMemoryTimeline
from .transactions import ITransport, PayloadQueue, TransactionService

__all__ = [
    # Agent
    "Agent",
    "IAgent",
    # Models
    "Span",
    "SpanState",
    "Transaction",
    "TransactionState",
    "build_transaction_payload",
    # Components
    "IClock",
    "PerformanceClock",
    "IConfigService",
    "ConfigService",
    "IPerformanceTimeline",
    "InMemoryTimeline",
    "EntryKind",
    "PerfEntryRecorder",
    "capture_navigation",
    "on_performance_entry",
    "ITransport",
    "PayloadQueue",
    "TransactionService",
    # Errors
    "InvalidArgumentError",
    "UnsupportedEntryTypeError",
]
