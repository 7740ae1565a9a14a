"""Thread-safe registry of publishers and their subscribers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from udpbroker.subscribers import SubscriberList

log = logging.getLogger(__name__)

INITIAL_CAPACITY = 16
LOAD_FACTOR_THRESHOLD = 0.75

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619


class PublisherNotFoundError(KeyError):
    """Raised when a publisher id is not registered."""


class DuplicatePublisherError(ValueError):
    """Raised when a publisher id is registered twice."""


class DuplicateSubscriberError(ValueError):
    """Raised when a subscriber is added to the same publisher twice."""


def bucket_index(key: int, capacity: int) -> int:
    """Map a key to a bucket using one FNV-1a round over its low byte."""
    value = _FNV_OFFSET ^ (key & 0xFF)
    value = (value * _FNV_PRIME) & 0xFFFFFFFF
    return value % capacity


@dataclass
class _Publisher:
    key: int
    subscribers: SubscriberList = field(repr=False)


class PublisherRegistry:
    """Chained hash table of publishers, each holding a subscriber list."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._buckets: list[list[_Publisher]] = [[] for _ in range(INITIAL_CAPACITY)]
        self._size = 0

    @property
    def capacity(self) -> int:
        return len(self._buckets)

    def _find(self, publisher_id: int) -> _Publisher | None:
        bucket = self._buckets[bucket_index(publisher_id, len(self._buckets))]
        for publisher in bucket:
            if publisher.key == publisher_id:
                return publisher
        return None

    def _require(self, publisher_id: int) -> _Publisher:
        publisher = self._find(publisher_id)
        if publisher is None:
            raise PublisherNotFoundError(publisher_id)
        return publisher

    def _resize(self) -> None:
        new_capacity = len(self._buckets) * 2
        new_buckets: list[list[_Publisher]] = [[] for _ in range(new_capacity)]
        for bucket in self._buckets:
            for publisher in bucket:
                new_buckets[bucket_index(publisher.key, new_capacity)].insert(0, publisher)
        self._buckets = new_buckets
        log.info("Registry resized to capacity %d", new_capacity)

    def add_publisher(self, publisher_id: int, max_size: int) -> None:
        """Register a publisher allowing at most ``max_size`` subscribers."""
        with self._lock:
            if (self._size + 1) / len(self._buckets) > LOAD_FACTOR_THRESHOLD:
                self._resize()
            if self._find(publisher_id) is not None:
                raise DuplicatePublisherError(f"publisher {publisher_id} already exists")
            index = bucket_index(publisher_id, len(self._buckets))
            self._buckets[index].insert(0, _Publisher(publisher_id, SubscriberList(max_size)))
            self._size += 1
            log.info("Publisher %d added.", publisher_id)

    def set_max_subscribers(self, publisher_id: int, max_size: int) -> None:
        """Change how many subscribers a publisher may have."""
        with self._lock:
            self._require(publisher_id).subscribers.max_size = max_size
            log.info("Max size for publisher %d changed to %d", publisher_id, max_size)

    def add_subscriber(
        self, publisher_id: int, subscriber_id: int, sock: Any, addr: tuple[str, int]
    ) -> None:
        """Subscribe ``subscriber_id`` to a publisher."""
        with self._lock:
            subscribers = self._require(publisher_id).subscribers
            if subscriber_id in subscribers:
                raise DuplicateSubscriberError(
                    f"subscriber {subscriber_id} already subscribed to {publisher_id}"
                )
            subscribers.add(subscriber_id, sock, addr)

    def remove_subscriber(self, publisher_id: int, subscriber_id: int) -> None:
        """Unsubscribe ``subscriber_id`` from a publisher."""
        with self._lock:
            self._require(publisher_id).subscribers.remove(subscriber_id)

    def find_by_subscriber(self, subscriber_id: int) -> int | None:
        """Return the first publisher id that has this subscriber, or None."""
        with self._lock:
            for bucket in self._buckets:
                for publisher in bucket:
                    if subscriber_id in publisher.subscribers:
                        return publisher.key
            return None

    def subscribers(self, publisher_id: int) -> SubscriberList:
        """Return the subscriber list of a publisher."""
        with self._lock:
            return self._require(publisher_id).subscribers

    def publisher_ids(self) -> list[int]:
        """Return all publisher ids in bucket order."""
        with self._lock:
            return [publisher.key for bucket in self._buckets for publisher in bucket]

    def describe(self) -> str:
        """Render the registry bucket by bucket."""
        lines: list[str] = []
        with self._lock:
            for index, bucket in enumerate(self._buckets):
                if not bucket:
                    continue
                lines.append(f"Bucket {index}:")
                for publisher in bucket:
                    lines.append(f"  Publisher ID: {publisher.key}")
                    lines.append(f"    Max subscribers: {publisher.subscribers.max_size}")
                    lines.extend(
                        f"      Subscriber ID: {entry.key}" for entry in publisher.subscribers
                    )
        return "\n".join(lines)

    def close(self) -> None:
        """Close all subscriber sockets and drop every publisher."""
        with self._lock:
            for bucket in self._buckets:
                for publisher in bucket:
                    publisher.subscribers.clear()
            self._buckets = [[] for _ in range(INITIAL_CAPACITY)]
            self._size = 0

    def __contains__(self, publisher_id: object) -> bool:
        if not isinstance(publisher_id, int):
            return False
        with self._lock:
            return self._find(publisher_id) is not None

    def __len__(self) -> int:
        return self._size