import pytest

from udpbroker.registry import (
    INITIAL_CAPACITY,
    DuplicatePublisherError,
    DuplicateSubscriberError,
    PublisherNotFoundError,
    PublisherRegistry,
    bucket_index,
)
from udpbroker.subscribers import SubscriberListFullError, SubscriberNotFoundError

ADDR = ("127.0.0.1", 40000)


class FakeSocket:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.mark.parametrize("key", [0, 1, 255, 12345, 65535, -1])
@pytest.mark.parametrize("capacity", [16, 32, 7])
def test_bucket_index_in_range(key, capacity):
    assert 0 <= bucket_index(key, capacity) < capacity


def test_bucket_index_uses_low_byte():
    assert bucket_index(1, 16) == bucket_index(257, 16)
    assert bucket_index(12345, 64) == bucket_index(12345 & 0xFF, 64)


def test_initial_capacity():
    registry = PublisherRegistry()
    assert registry.capacity == INITIAL_CAPACITY
    assert len(registry) == 0


def test_add_publisher():
    registry = PublisherRegistry()
    registry.add_publisher(5000, 3)
    assert 5000 in registry
    assert 5001 not in registry
    assert len(registry) == 1
    assert registry.subscribers(5000).max_size == 3


def test_duplicate_publisher_raises():
    registry = PublisherRegistry()
    registry.add_publisher(5000, 3)
    with pytest.raises(DuplicatePublisherError):
        registry.add_publisher(5000, 4)
    assert len(registry) == 1


def test_resize_keeps_publishers():
    registry = PublisherRegistry()
    ids = list(range(1000, 1012))
    for pid in ids:
        registry.add_publisher(pid, 1)
    assert registry.capacity == INITIAL_CAPACITY
    registry.add_publisher(2000, 1)
    assert registry.capacity == INITIAL_CAPACITY * 2
    assert sorted(registry.publisher_ids()) == sorted(ids + [2000])
    assert all(pid in registry for pid in ids + [2000])


def test_set_max_subscribers():
    registry = PublisherRegistry()
    registry.add_publisher(1, 1)
    registry.set_max_subscribers(1, 10)
    assert registry.subscribers(1).max_size == 10
    with pytest.raises(PublisherNotFoundError):
        registry.set_max_subscribers(2, 10)


def test_add_and_remove_subscriber():
    registry = PublisherRegistry()
    registry.add_publisher(1, 2)
    registry.add_subscriber(1, 50, None, ADDR)
    assert 50 in registry.subscribers(1)
    registry.remove_subscriber(1, 50)
    assert 50 not in registry.subscribers(1)


def test_add_subscriber_errors():
    registry = PublisherRegistry()
    with pytest.raises(PublisherNotFoundError):
        registry.add_subscriber(1, 50, None, ADDR)
    registry.add_publisher(1, 1)
    registry.add_subscriber(1, 50, None, ADDR)
    with pytest.raises(DuplicateSubscriberError):
        registry.add_subscriber(1, 50, None, ADDR)
    with pytest.raises(SubscriberListFullError):
        registry.add_subscriber(1, 51, None, ADDR)


def test_remove_subscriber_errors():
    registry = PublisherRegistry()
    with pytest.raises(PublisherNotFoundError):
        registry.remove_subscriber(1, 50)
    registry.add_publisher(1, 1)
    with pytest.raises(SubscriberNotFoundError):
        registry.remove_subscriber(1, 50)


def test_subscribers_missing_publisher():
    registry = PublisherRegistry()
    with pytest.raises(PublisherNotFoundError):
        registry.subscribers(99)


def test_find_by_subscriber():
    registry = PublisherRegistry()
    registry.add_publisher(1, 2)
    registry.add_publisher(2, 2)
    registry.add_subscriber(2, 70, None, ADDR)
    assert registry.find_by_subscriber(70) == 2
    assert registry.find_by_subscriber(71) is None


def test_publisher_ids_matches_contents():
    registry = PublisherRegistry()
    for pid in (12345, 50001, 50002):
        registry.add_publisher(pid, 1)
    ids = registry.publisher_ids()
    assert sorted(ids) == [12345, 50001, 50002]
    assert len(ids) == len(registry)


def test_describe():
    registry = PublisherRegistry()
    registry.add_publisher(5, 3)
    registry.add_subscriber(5, 42, None, ADDR)
    text = registry.describe()
    index = bucket_index(5, registry.capacity)
    assert f"Bucket {index}:" in text
    assert "  Publisher ID: 5" in text
    assert "    Max subscribers: 3" in text
    assert "      Subscriber ID: 42" in text


def test_describe_empty():
    assert PublisherRegistry().describe() == ""


def test_close_closes_sockets_and_empties():
    registry = PublisherRegistry()
    registry.add_publisher(1, 2)
    sock = FakeSocket()
    registry.add_subscriber(1, 10, sock, ADDR)
    registry.close()
    assert sock.closed is True
    assert len(registry) == 0
    assert 1 not in registry
    assert registry.publisher_ids() == []