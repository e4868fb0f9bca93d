"""Transport interface and an in-memory payload queue."""

from typing import Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


class ITransport(Protocol):
    """Ships finished transaction payloads to the collector."""

    def send_transaction(self, payload: dict) -> None:
        """Accept one filtered transaction payload."""
        ...


class PayloadQueue:
    """Holds payloads until the host drains them.

    A non-negative `limit` caps the queue; payloads beyond it are dropped.
    """

    def __init__(self, limit: int = -1):
        self._limit = limit
        self._payloads: list[dict] = []

    def send_transaction(self, payload: dict) -> None:
        if 0 <= self._limit <= len(self._payloads):
            logger.warning("Payload queue full (%s), dropping %s", self._limit, payload.get("name"))
            return
        self._payloads.append(payload)

    def set_limit(self, limit: int) -> None:
        self._limit = limit

    def drain(self) -> list[dict]:
        """Return and clear all queued payloads."""
        payloads, self._payloads = self._payloads, []
        return payloads

    def __len__(self) -> int:
        return len(self._payloads)
