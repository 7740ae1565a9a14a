"""Growable, thread-safe FIFO of messages waiting to be delivered."""

from __future__ import annotations

import threading
from collections import deque

INITIAL_CAPACITY = 2
MAX_MESSAGE_SIZE = 256


class QueueEmptyError(Exception):
    """Raised when no message arrives before the timeout runs out."""


class MessageQueue:
    """FIFO of ``(publisher_id, message)`` pairs that doubles its capacity when full."""

    def __init__(self, initial_capacity: int = INITIAL_CAPACITY) -> None:
        if initial_capacity < 1:
            raise ValueError("initial capacity must be at least 1")
        self._capacity = initial_capacity
        self._items: deque[tuple[int, str]] = deque()
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        """Current capacity; it doubles whenever a put finds the queue full."""
        with self._cond:
            return self._capacity

    def put(self, publisher_id: int, message: str) -> None:
        """Append a message published by ``publisher_id``."""
        if len(message.encode("utf-8")) >= MAX_MESSAGE_SIZE:
            raise ValueError(
                f"message longer than {MAX_MESSAGE_SIZE - 1} bytes cannot be queued"
            )
        with self._cond:
            if len(self._items) == self._capacity:
                self._capacity *= 2
            self._items.append((publisher_id, message))
            self._cond.notify()

    def get(self, timeout: float | None = 1.0) -> tuple[int, str]:
        """Remove and return the oldest message, waiting up to ``timeout`` seconds."""
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._items), timeout):
                raise QueueEmptyError("no message available")
            return self._items.popleft()

    def empty(self) -> bool:
        """Return True when no message is waiting."""
        with self._cond:
            return not self._items

    def snapshot(self) -> list[tuple[int, str]]:
        """Return the waiting messages, oldest first."""
        with self._cond:
            return list(self._items)

    def describe(self) -> str:
        """Render the queue contents one message per line."""
        lines = ["Queue contents:"]
        lines.extend(
            f"ID: {publisher_id}, Message: {message}"
            for publisher_id, message in self.snapshot()
        )
        return "\n".join(lines)

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)