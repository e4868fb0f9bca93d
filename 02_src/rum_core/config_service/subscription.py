"""Ordered callback registry used for change notification."""

from typing import Any, Callable

from ..logging_config import get_logger

logger = get_logger(__name__)


class Subscription:
    """Callbacks invoked in registration order; failures are logged."""

    def __init__(self):
        self._subscribers: list[Callable[..., Any]] = []

    def subscribe(self, fn: Callable[..., Any]) -> Callable[[], None]:
        """Register `fn`, returning a callable that unregisters it."""
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    def apply_all(self, *args: Any) -> None:
        """Call every subscriber with `args`."""
        # Copy so a subscriber may unsubscribe itself while being called
        for i, fn in enumerate(list(self._subscribers)):
            try:
                fn(*args)
            except Exception as e:
                logger.error("Error in subscriber %s: %s", i, e, exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)
