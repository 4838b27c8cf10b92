"""In-process publish/subscribe dispatching."""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Handler = Callable[[T], object]


class EventDispatcher(Generic[T]):
    """Thread-safe dispatcher that delivers events to every subscribed handler.

    Handlers run in the publisher's thread, in the order they subscribed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        """Register a handler to be called on each published event."""
        with self._lock:
            self._handlers.append(handler)

    def publish(self, event: T) -> None:
        """Deliver an event to all current subscribers."""
        with self._lock:
            handlers = tuple(self._handlers)
        for handler in handlers:
            handler(event)