import threading

import pytest

from udpbroker.message_queue import (
    INITIAL_CAPACITY,
    MAX_MESSAGE_SIZE,
    MessageQueue,
    QueueEmptyError,
)


def test_fifo_order():
    queue = MessageQueue()
    queue.put(7, "first")
    queue.put(8, "second")
    queue.put(7, "third")
    assert queue.get() == (7, "first")
    assert queue.get() == (8, "second")
    assert queue.get() == (7, "third")


def test_get_on_empty_queue_times_out():
    queue = MessageQueue()
    with pytest.raises(QueueEmptyError):
        queue.get(timeout=0.01)


def test_empty_and_len_track_contents():
    queue = MessageQueue()
    assert queue.empty()
    queue.put(1, "a")
    assert not queue.empty()
    assert len(queue) == 1
    queue.get()
    assert queue.empty()
    assert len(queue) == 0


def test_capacity_doubles_when_full():
    queue = MessageQueue()
    assert queue.capacity == INITIAL_CAPACITY
    for n in range(INITIAL_CAPACITY + 1):
        queue.put(n, f"m{n}")
    assert queue.capacity == INITIAL_CAPACITY * 2
    assert [queue.get()[0] for _ in range(INITIAL_CAPACITY + 1)] == list(
        range(INITIAL_CAPACITY + 1)
    )


def test_custom_initial_capacity_and_invalid():
    assert MessageQueue(5).capacity == 5
    with pytest.raises(ValueError):
        MessageQueue(0)


def test_message_too_long_is_rejected():
    queue = MessageQueue()
    queue.put(1, "x" * (MAX_MESSAGE_SIZE - 1))
    with pytest.raises(ValueError):
        queue.put(1, "x" * MAX_MESSAGE_SIZE)
    assert len(queue) == 1


def test_snapshot_does_not_consume():
    queue = MessageQueue()
    queue.put(3, "hello")
    queue.put(4, "world")
    assert queue.snapshot() == [(3, "hello"), (4, "world")]
    assert len(queue) == 2


def test_describe_lists_messages():
    queue = MessageQueue()
    queue.put(12345, "jabuka")
    assert queue.describe() == "Queue contents:\nID: 12345, Message: jabuka"


def test_get_waits_for_producer():
    queue = MessageQueue()
    timer = threading.Timer(0.05, queue.put, args=(9, "late"))
    timer.start()
    try:
        assert queue.get(timeout=2.0) == (9, "late")
    finally:
        timer.join()


def test_concurrent_producers_deliver_everything():
    queue = MessageQueue()

    def produce(pid):
        for n in range(50):
            queue.put(pid, str(n))

    threads = [threading.Thread(target=produce, args=(pid,)) for pid in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    received = [queue.get(timeout=0.1) for _ in range(200)]
    assert len(set(received)) == 200
    for pid in range(4):
        assert [m for p, m in received if p == pid] == [str(n) for n in range(50)]