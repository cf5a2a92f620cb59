"""Token-based observer registry.

Delivery iterates a snapshot of the registered callbacks, so registering or
unregistering from inside a callback never skips or repeats another
callback. A callback removed while a delivery is in progress is not invoked
after its removal.
"""

import itertools
import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Callback = Callable[[T], object]


class SubscriberRegistry(Generic[T]):
    """Thread-safe set of callbacks keyed by registration token."""

    def __init__(self, name: str = ""):
        self.name = name
        self._lock = threading.Lock()
        self._entries: dict[int, Callback] = {}
        self._tokens = itertools.count(1)

    def register(self, callback: Callback) -> int:
        """Add a callback and return its token."""
        with self._lock:
            token = next(self._tokens)
            self._entries[token] = callback
            return token

    def unregister(self, token: int) -> bool:
        """Remove a callback. Returns False if the token was not registered."""
        with self._lock:
            return self._entries.pop(token, None) is not None

    def is_registered(self, token: int) -> bool:
        with self._lock:
            return token in self._entries

    def snapshot(self) -> list[tuple[int, Callback]]:
        with self._lock:
            return list(self._entries.items())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def deliver(
        self,
        event: T,
        invoke: Callable[[Callback, T], None] | None = None,
    ) -> int:
        """
        Hand `event` to every registered callback.

        Args:
            event: Value passed to each callback
            invoke: Optional hook that performs the call (used to schedule
                async callbacks); defaults to calling the callback directly

        Returns:
            Number of callbacks invoked
        """
        delivered = 0
        for token, callback in self.snapshot():
            if not self.is_registered(token):
                continue
            try:
                if invoke is None:
                    callback(event)
                else:
                    invoke(callback, event)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber callback error ({self.name}): {e}")
        return delivered

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
