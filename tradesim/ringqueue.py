"""Bounded single-producer, single-consumer queue."""

from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class QueueFull(queue.Full):
    """Raised when pushing onto a full queue."""


class QueueEmpty(queue.Empty):
    """Raised when popping from an empty queue."""


class SpscQueue(Generic[T]):
    """Bounded FIFO ring; a queue of capacity N holds at most N - 1 items."""

    def __init__(self, capacity: int = 1024) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._lock = threading.Lock()

    def push(self, item: T) -> None:
        """Append an item; raises QueueFull when there is no room."""
        with self._lock:
            if len(self._items) >= self.capacity - 1:
                raise QueueFull("queue is full")
            self._items.append(item)

    def pop(self) -> T:
        """Remove and return the oldest item; raises QueueEmpty when empty."""
        with self._lock:
            if not self._items:
                raise QueueEmpty("queue is empty")
            return self._items.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)