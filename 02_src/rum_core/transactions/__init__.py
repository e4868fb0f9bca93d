"""Transactions module."""

from .service import ITransactionService, TransactionListener, TransactionService
from .transport import ITransport, PayloadQueue

__all__ = [
    "ITransactionService",
    "ITransport",
    "PayloadQueue",
    "TransactionListener",
    "TransactionService",
]
