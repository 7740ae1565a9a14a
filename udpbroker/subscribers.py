"""Per-publisher list of subscribers with a bounded size."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

log = logging.getLogger(__name__)


class SubscriberListFullError(Exception):
    """Raised when a subscriber list has reached its maximum size."""


class SubscriberNotFoundError(KeyError):
    """Raised when a subscriber key is not in the list."""


@dataclass
class SubscriberEntry:
    """One subscriber: its id, the socket to reach it and its address."""

    key: int
    sock: Any
    addr: tuple[str, int]


class SubscriberList:
    """Subscribers of one publisher; the newest subscriber comes first."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._entries: list[SubscriberEntry] = []

    def add(self, key: int, sock: Any, addr: tuple[str, int]) -> SubscriberEntry:
        """Add a subscriber at the front of the list."""
        if len(self._entries) >= self.max_size:
            raise SubscriberListFullError(
                f"subscriber list is full ({self.max_size}); cannot add subscriber {key}"
            )
        entry = SubscriberEntry(key, sock, addr)
        self._entries.insert(0, entry)
        log.info("Subscriber %d added.", key)
        return entry

    def _find(self, key: int) -> SubscriberEntry:
        for entry in self._entries:
            if entry.key == key:
                return entry
        raise SubscriberNotFoundError(key)

    def __contains__(self, key: object) -> bool:
        return any(entry.key == key for entry in self._entries)

    def get_socket(self, key: int) -> Any:
        """Return the socket registered for a subscriber."""
        return self._find(key).sock

    def get_address(self, key: int) -> tuple[str, int]:
        """Return the address registered for a subscriber."""
        return self._find(key).addr

    def remove(self, key: int) -> SubscriberEntry:
        """Remove a subscriber and return its entry; its socket is left open."""
        entry = self._find(key)
        self._entries.remove(entry)
        log.info("Subscriber %d removed.", key)
        return entry

    def clear(self) -> None:
        """Close every subscriber socket and empty the list."""
        for entry in self._entries:
            if entry.sock is not None:
                entry.sock.close()
        self._entries.clear()
        log.info("Subscriber list cleared.")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SubscriberEntry]:
        return iter(tuple(self._entries))