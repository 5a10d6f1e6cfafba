"""Thread-safe FIFO queue used by the executors to hand tasks to workers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, TypeVar

T = TypeVar("T")

DEFAULT_POOL_SIZE = 1024


class TaskQueue(Generic[T]):
    """A first-in, first-out queue safe for many producers and consumers.

    ``pool_size`` is the number of slots the queue reserves for queued items.
    When more items are queued than there are slots, the pool doubles in size.
    ``resize_pool`` can grow it ahead of time but never shrinks it.
    """

    def __init__(self, pool_size: int = DEFAULT_POOL_SIZE) -> None:
        if pool_size < 1:
            raise ValueError(f"pool size must be at least 1, got {pool_size}")
        self._pool_size = pool_size
        self._items: Deque[T] = deque()
        self._lock = threading.Lock()

    @property
    def pool_size(self) -> int:
        """Number of slots currently reserved for queued items."""
        with self._lock:
            return self._pool_size

    def push(self, value: T) -> None:
        """Append ``value`` to the back of the queue."""
        with self._lock:
            while len(self._items) >= self._pool_size:
                self._pool_size *= 2
            self._items.append(value)

    def pop(self) -> T:
        """Remove and return the item at the front of the queue.

        Raises ``IndexError`` if the queue is empty.
        """
        with self._lock:
            try:
                return self._items.popleft()
            except IndexError:
                raise IndexError("pop from an empty TaskQueue") from None

    def resize_pool(self, new_size: int) -> None:
        """Grow the pool to ``new_size`` slots; smaller sizes are ignored."""
        with self._lock:
            if new_size > self._pool_size:
                self._pool_size = new_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"TaskQueue(len={len(self)}, pool_size={self.pool_size})"