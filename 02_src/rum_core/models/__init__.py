"""Core data models for the RUM agent."""

from .span import Span, SpanBase, SpanState, add_span_context
from .transaction import TaskId, Transaction, TransactionState
from .payload import (
    SpanPayload,
    TransactionPayload,
    build_span_payload,
    build_transaction_payload,
)

__all__ = [
    # Spans
    "Span",
    "SpanBase",
    "SpanState",
    "add_span_context",
    # Transactions
    "TaskId",
    "Transaction",
    "TransactionState",
    # Payloads
    "SpanPayload",
    "TransactionPayload",
    "build_span_payload",
    "build_transaction_payload",
]
