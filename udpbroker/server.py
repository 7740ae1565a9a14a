"""UDP broker that relays publisher messages to subscribed clients."""

from __future__ import annotations

import logging
import select
import socket
import threading
from typing import Any, Callable

from udpbroker.message_queue import MessageQueue, QueueEmptyError
from udpbroker.protocol import (
    ACKNOWLEDGED,
    EXIT,
    MAX_BUFFER_SIZE,
    PUBLISHER_PORT,
    SUBSCRIBE_FAILED,
    SUBSCRIBED,
    SUBSCRIBER_PORT,
    UNSUBSCRIBE_FAILED,
    UNSUBSCRIBED,
    Operation,
    SubscriberRequestKind,
    format_publisher_ids,
    parse_publisher_message,
    parse_subscriber_request,
)
from udpbroker.registry import (
    DuplicatePublisherError,
    DuplicateSubscriberError,
    PublisherNotFoundError,
    PublisherRegistry,
)
from udpbroker.subscribers import SubscriberListFullError, SubscriberNotFoundError

log = logging.getLogger(__name__)

THREAD_POOL_SIZE = 4
MAX_TRACKED_SUBSCRIBERS = 1000
LOOPBACK = "127.0.0.1"

Address = tuple[str, int]


class BrokerServer:
    """Receives publisher datagrams on one port and subscriber requests on another."""

    poll_interval = 1.0

    def __init__(
        self,
        host: str = "0.0.0.0",
        publisher_port: int = PUBLISHER_PORT,
        subscriber_port: int = SUBSCRIBER_PORT,
        workers: int = THREAD_POOL_SIZE,
    ) -> None:
        if workers < 1:
            raise ValueError("at least one worker is required")
        self.host = host
        self.publisher_port = publisher_port
        self.subscriber_port = subscriber_port
        self.workers = workers
        self.registry = PublisherRegistry()
        self.queue = MessageQueue()
        self.subscriber_ports: list[int] = []
        self._shutdown = threading.Event()
        self._publisher_sock: socket.socket | None = None
        self._subscriber_sock: socket.socket | None = None
        self._threads: list[threading.Thread] = []

    @property
    def shutting_down(self) -> bool:
        """True once :meth:`stop` has been called."""
        return self._shutdown.is_set()

    @property
    def publisher_address(self) -> Address:
        """Address the publisher socket is bound to."""
        if self._publisher_sock is None:
            raise RuntimeError("server is not started")
        return self._publisher_sock.getsockname()[:2]

    @property
    def subscriber_address(self) -> Address:
        """Address the subscriber socket is bound to."""
        if self._subscriber_sock is None:
            raise RuntimeError("server is not started")
        return self._subscriber_sock.getsockname()[:2]

    def start(self) -> None:
        """Bind both sockets and start the receiving and delivering threads."""
        if self._threads:
            raise RuntimeError("server already started")
        publisher_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        subscriber_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            publisher_sock.bind((self.host, self.publisher_port))
            subscriber_sock.bind((self.host, self.subscriber_port))
        except OSError:
            publisher_sock.close()
            subscriber_sock.close()
            raise
        self._publisher_sock = publisher_sock
        self._subscriber_sock = subscriber_sock
        log.info("Server is running on port %d", publisher_sock.getsockname()[1])

        self._threads = [
            threading.Thread(
                target=self._serve,
                args=(publisher_sock, self.handle_publisher_datagram, self.send_exit_to_publishers),
                name="publisher-receiver",
                daemon=True,
            ),
            threading.Thread(
                target=self._serve,
                args=(subscriber_sock, self.handle_subscriber_datagram, self.send_exit_to_subscribers),
                name="subscriber-receiver",
                daemon=True,
            ),
        ]
        self._threads.extend(
            threading.Thread(target=self._work, name=f"worker-{number}", daemon=True)
            for number in range(self.workers)
        )
        for thread in self._threads:
            thread.start()

    def stop(self) -> None:
        """Ask every thread to finish; publishers and subscribers are told to exit."""
        self._shutdown.set()

    def wait(self) -> None:
        """Wait for all threads to finish, then release sockets and subscribers."""
        for thread in self._threads:
            thread.join()
        self._threads = []
        self.registry.close()
        for sock in (self._publisher_sock, self._subscriber_sock):
            if sock is not None:
                sock.close()
        self._publisher_sock = None
        self._subscriber_sock = None

    def _wait_readable(self, sock: socket.socket) -> bool:
        readable, _, _ = select.select([sock], [], [], self.poll_interval)
        return bool(readable)

    def _serve(
        self,
        sock: socket.socket,
        handler: Callable[[bytes, Address], bytes | None],
        on_shutdown: Callable[[], int],
    ) -> None:
        while not self._shutdown.is_set():
            if not self._wait_readable(sock) or self._shutdown.is_set():
                continue
            try:
                data, addr = sock.recvfrom(MAX_BUFFER_SIZE)
            except OSError as exc:
                log.warning("recvfrom failed: %s", exc)
                continue
            reply = handler(data, addr)
            if reply is not None:
                try:
                    sock.sendto(reply, addr)
                except OSError as exc:
                    log.warning("Failed to reply to %s: %s", addr, exc)
        on_shutdown()
        log.info("%s exiting", threading.current_thread().name)

    def _work(self) -> None:
        while not self._shutdown.is_set():
            try:
                publisher_id, message = self.queue.get(timeout=self.poll_interval)
            except QueueEmptyError:
                continue
            self.deliver(publisher_id, message)
        log.info("Worker thread exiting")

    def handle_publisher_datagram(self, data: bytes, addr: Address) -> bytes | None:
        """Register a publisher or queue its message; every datagram is acknowledged."""
        try:
            request = parse_publisher_message(data, addr[1])
        except ValueError as exc:
            log.warning("Malformed publisher datagram from %s: %s", addr, exc)
            return ACKNOWLEDGED
        if request.operation is Operation.REGISTER:
            try:
                self.registry.add_publisher(request.publisher_id, request.max_size)
            except DuplicatePublisherError:
                log.info("Publisher with ID %d already exists.", request.publisher_id)
        else:
            self.queue.put(request.publisher_id, request.message)
            log.debug("%s", self.queue.describe())
        return ACKNOWLEDGED

    def handle_subscriber_datagram(self, data: bytes, addr: Address) -> bytes | None:
        """Answer a subscriber request; returns the reply, or None when there is none."""
        try:
            request = parse_subscriber_request(data)
        except ValueError as exc:
            log.info("Unknown subscriber request: %s", exc)
            return None

        if request.kind is SubscriberRequestKind.GET_PUBLISHERS:
            try:
                return format_publisher_ids(self.registry.publisher_ids())
            except ValueError as exc:
                log.error("Cannot serialise publisher ids: %s", exc)
                return None

        publisher_id = request.publisher_id
        subscriber_id = addr[1]
        if request.kind is SubscriberRequestKind.SUBSCRIBE:
            try:
                self.registry.add_subscriber(
                    publisher_id, subscriber_id, self._subscriber_sock, addr
                )
            except (PublisherNotFoundError, DuplicateSubscriberError, SubscriberListFullError) as exc:
                log.info(
                    "Subscriber %d failed to subscribe to publisher %s: %s",
                    subscriber_id, publisher_id, exc,
                )
                return SUBSCRIBE_FAILED
            if len(self.subscriber_ports) < MAX_TRACKED_SUBSCRIBERS:
                self.subscriber_ports.append(subscriber_id)
            log.info("Subscriber %d added to publisher %s", subscriber_id, publisher_id)
            return SUBSCRIBED

        try:
            self.registry.remove_subscriber(publisher_id, subscriber_id)
        except (PublisherNotFoundError, SubscriberNotFoundError):
            log.info(
                "Subscriber %d was unable to unsubscribe from publisher %s",
                subscriber_id, publisher_id,
            )
            return UNSUBSCRIBE_FAILED
        log.info("Subscriber %d removed from publisher %s", subscriber_id, publisher_id)
        return UNSUBSCRIBED

    def deliver(self, publisher_id: int, message: str) -> int:
        """Send a message to every subscriber of a publisher; return how many got it."""
        try:
            entries = list(self.registry.subscribers(publisher_id))
        except PublisherNotFoundError:
            entries = []
        if not entries:
            log.info("No subscribers found for publisher ID %d", publisher_id)
            return 0
        payload = message.encode("utf-8")
        delivered = 0
        for entry in entries:
            sock: Any = entry.sock if entry.sock is not None else self._subscriber_sock
            if sock is None:
                log.warning("No socket to reach subscriber %d", entry.key)
                continue
            try:
                sock.sendto(payload, entry.addr)
            except OSError as exc:
                log.warning("Failed to send message to subscriber %d: %s", entry.key, exc)
                continue
            delivered += 1
        return delivered

    def send_exit_to_publishers(self) -> int:
        """Send EXIT to every registered publisher on the loopback address."""
        sent = 0
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            for publisher_id in self.registry.publisher_ids():
                try:
                    sock.sendto(EXIT, (LOOPBACK, publisher_id))
                except OSError as exc:
                    log.warning("Failed to send EXIT to publisher on port %d: %s", publisher_id, exc)
                    continue
                sent += 1
        return sent

    def send_exit_to_subscribers(self) -> int:
        """Send EXIT to every port that has ever subscribed, on the loopback address."""
        own = self._subscriber_sock
        sock = own if own is not None else socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sent = 0
        try:
            for port in self.subscriber_ports:
                try:
                    sock.sendto(EXIT, (LOOPBACK, port))
                except OSError as exc:
                    log.warning("Failed to send EXIT to subscriber on port %d: %s", port, exc)
                    continue
                sent += 1
        finally:
            if own is None:
                sock.close()
        return sent

    def __enter__(self) -> BrokerServer:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()
        self.wait()