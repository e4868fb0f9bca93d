"""Outgoing payload models handed to filters and the transport."""

from typing import Any

from pydantic import BaseModel, Field

from .span import Span
from .transaction import Transaction


class SpanPayload(BaseModel):
    """A finished span, offsets relative to the transaction start."""

    id: str
    transaction_id: str
    parent_id: str | None = None
    trace_id: str | None = None
    name: str
    type: str
    subtype: str | None = None
    action: str | None = None
    sync: bool | None = None
    start: float
    duration: float
    context: dict[str, Any] | None = None


class SpanCount(BaseModel):
    started: int
    dropped: int = 0


class TransactionPayload(BaseModel):
    """A finished transaction ready for the transport."""

    id: str
    trace_id: str
    name: str
    type: str
    duration: float
    sampled: bool
    spans: list[SpanPayload] = Field(default_factory=list)
    marks: dict[str, dict[str, Any]] | None = None
    context: dict[str, Any] | None = None
    span_count: SpanCount


def _span_context(span: Span) -> dict | None:
    context = dict(span.context) if span.context else {}
    if span.labels:
        context["tags"] = dict(span.labels)
    return context or None


def build_span_payload(span: Span, transaction: Transaction) -> SpanPayload:
    return SpanPayload(
        id=span.id,
        transaction_id=transaction.id,
        parent_id=span.parent_id,
        trace_id=transaction.trace_id,
        name=span.name,
        type=span.type,
        subtype=span.subtype,
        action=span.action,
        sync=span.sync,
        start=span.start - transaction.start,
        duration=span.duration() or 0.0,
        context=_span_context(span),
    )


def build_transaction_payload(transaction: Transaction) -> dict:
    """Serialize a finished transaction into the dict filters operate on.

    Unsampled transactions carry no spans.
    """
    spans = []
    if transaction.sampled:
        spans = [
            build_span_payload(span, transaction)
            for span in transaction.spans
            if span.ended
        ]

    payload = TransactionPayload(
        id=transaction.id,
        trace_id=transaction.trace_id,
        name=transaction.name,
        type=transaction.type,
        duration=transaction.duration() or 0.0,
        sampled=bool(transaction.sampled),
        spans=spans,
        marks=transaction.marks,
        context=_span_context(transaction),
        span_count=SpanCount(started=len(spans)),
    )
    return payload.model_dump(exclude_none=True)
