import pytest

from udpbroker.subscribers import (
    SubscriberEntry,
    SubscriberList,
    SubscriberListFullError,
    SubscriberNotFoundError,
)


class FakeSocket:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


ADDR = ("127.0.0.1", 40000)


def test_add_and_contains():
    subs = SubscriberList(3)
    subs.add(1, None, ADDR)
    assert 1 in subs
    assert 2 not in subs
    assert len(subs) == 1


def test_add_returns_entry():
    subs = SubscriberList(3)
    entry = subs.add(7, None, ADDR)
    assert entry == SubscriberEntry(7, None, ADDR)


def test_full_list_raises():
    subs = SubscriberList(2)
    subs.add(1, None, ADDR)
    subs.add(2, None, ADDR)
    with pytest.raises(SubscriberListFullError):
        subs.add(3, None, ADDR)
    assert len(subs) == 2


def test_zero_max_size_rejects_everything():
    subs = SubscriberList(0)
    with pytest.raises(SubscriberListFullError):
        subs.add(1, None, ADDR)


def test_newest_first_iteration():
    subs = SubscriberList(5)
    for key in (1, 2, 3):
        subs.add(key, None, ADDR)
    assert [entry.key for entry in subs] == [3, 2, 1]


def test_get_socket_and_address():
    sock = FakeSocket()
    subs = SubscriberList(2)
    subs.add(4, sock, ("10.0.0.1", 5555))
    assert subs.get_socket(4) is sock
    assert subs.get_address(4) == ("10.0.0.1", 5555)


def test_missing_lookups_raise():
    subs = SubscriberList(2)
    with pytest.raises(SubscriberNotFoundError):
        subs.get_socket(9)
    with pytest.raises(SubscriberNotFoundError):
        subs.get_address(9)


def test_remove():
    sock = FakeSocket()
    subs = SubscriberList(3)
    subs.add(1, sock, ADDR)
    subs.add(2, None, ADDR)
    removed = subs.remove(1)
    assert removed.key == 1
    assert 1 not in subs
    assert len(subs) == 1
    assert sock.closed is False


def test_remove_missing_raises():
    subs = SubscriberList(3)
    subs.add(1, None, ADDR)
    with pytest.raises(SubscriberNotFoundError):
        subs.remove(2)
    assert len(subs) == 1


def test_remove_frees_room():
    subs = SubscriberList(1)
    subs.add(1, None, ADDR)
    subs.remove(1)
    subs.add(2, None, ADDR)
    assert 2 in subs


def test_clear_closes_sockets():
    socks = [FakeSocket(), FakeSocket()]
    subs = SubscriberList(5)
    for key, sock in enumerate(socks):
        subs.add(key, sock, ADDR)
    subs.clear()
    assert len(subs) == 0
    assert all(sock.closed for sock in socks)


def test_raised_max_size_allows_more():
    subs = SubscriberList(1)
    subs.add(1, None, ADDR)
    subs.max_size = 2
    subs.add(2, None, ADDR)
    assert len(subs) == 2