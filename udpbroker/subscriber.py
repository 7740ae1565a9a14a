"""Subscriber client: an interactive subscriber and a many-subscriber stress test."""

from __future__ import annotations

import argparse
import logging
import queue
import select
import socket
import sys
import threading
from typing import TextIO

from udpbroker.protocol import (
    EXIT,
    MAX_BUFFER_SIZE,
    SUBSCRIBER_PORT,
    UNSUBSCRIBED_BY_ADMIN,
    parse_publisher_list,
    subscribe_request,
    unsubscribe_request,
)

log = logging.getLogger(__name__)

STRESS_COUNT = 50
POLL_INTERVAL = 1.0
REPLY_TIMEOUT = 5.0
GET_PUBLISHERS = b"get_publishers"

Address = tuple[str, int]


def _readable(sock: socket.socket, timeout: float) -> bool:
    ready, _, _ = select.select([sock], [], [], timeout)
    return bool(ready)


def _writer(stdout: TextIO):
    def write(text: str, newline: bool = True) -> None:
        stdout.write(text + ("\n" if newline else ""))
        stdout.flush()

    return write


class SubscriberClient:
    """A UDP endpoint that talks to the broker's subscriber port."""

    timeout = REPLY_TIMEOUT
    poll_interval = POLL_INTERVAL

    def __init__(self, server_addr: Address, sock: socket.socket | None = None) -> None:
        self.server_addr = server_addr
        if sock is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.bind(("0.0.0.0", 0))
        self.sock = sock
        self._lock = threading.Lock()
        self._listening = False
        self._awaiting = False
        self._replies: queue.Queue[bytes] = queue.Queue()

    @property
    def address(self) -> Address:
        """Local address of the client socket."""
        return self.sock.getsockname()[:2]

    def _request(self, payload: bytes) -> bytes:
        with self._lock:
            listening = self._listening
            if listening:
                self._awaiting = True
        self.sock.sendto(payload, self.server_addr)
        if listening:
            try:
                return self._replies.get(timeout=self.timeout)
            except queue.Empty:
                with self._lock:
                    self._awaiting = False
                raise TimeoutError("no reply from server") from None
        if not _readable(self.sock, self.timeout):
            raise TimeoutError("no reply from server")
        data, _ = self.sock.recvfrom(MAX_BUFFER_SIZE)
        return data

    def request_publishers(self) -> list[int]:
        """Ask the broker which publishers are registered."""
        return parse_publisher_list(self._request(GET_PUBLISHERS))

    def subscribe(self, publisher_id: int) -> str:
        """Subscribe to a publisher and return the broker's reply."""
        return self._request(subscribe_request(publisher_id)).decode("utf-8", errors="replace")

    def unsubscribe(self, publisher_id: int) -> str:
        """Unsubscribe from a publisher and return the broker's reply."""
        return self._request(unsubscribe_request(publisher_id)).decode("utf-8", errors="replace")

    def receive_messages(self, stop_event: threading.Event, stdout: TextIO | None = None) -> int:
        """Print incoming messages until stopped or told to exit; return how many came."""
        write = _writer(stdout if stdout is not None else sys.stdout)
        with self._lock:
            self._listening = True
        received = 0
        try:
            while not stop_event.is_set():
                try:
                    if not _readable(self.sock, self.poll_interval):
                        continue
                    data, _ = self.sock.recvfrom(MAX_BUFFER_SIZE)
                except (OSError, ValueError) as exc:
                    write(f"Error: Failed to receive message from server: {exc}")
                    break
                with self._lock:
                    if self._awaiting:
                        self._awaiting = False
                        self._replies.put(data)
                        continue
                write(f"\nMessage from publisher: {data.decode('utf-8', errors='replace')}")
                if data == EXIT:
                    write("Shutdown signal received.")
                    stop_event.set()
                    break
                received += 1
        finally:
            with self._lock:
                self._listening = False
                self._awaiting = False
        return received

    def close(self) -> None:
        """Close the client socket."""
        self.sock.close()


def _read_int(stdin: TextIO) -> int | None:
    line = stdin.readline()
    if not line:
        raise EOFError
    try:
        return int(line.strip())
    except ValueError:
        return None


def run_interactive(
    client: SubscriberClient,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Drive a subscriber from a menu; return 0 on a normal exit, 1 otherwise."""
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    write = _writer(stdout)

    write("Requesting list of publishers...")
    try:
        publishers = client.request_publishers()
    except (TimeoutError, OSError) as exc:
        write(f"Error: Failed to receive data from server: {exc}")
        return 1
    listing = ",".join(str(pid) for pid in publishers) or "No publishers available"
    write(f"Available Publishers:\n{listing}")

    stop_event = threading.Event()
    receiver = threading.Thread(
        target=client.receive_messages, args=(stop_event, stdout), name="subscriber-receiver"
    )
    receiver.start()

    write("Choose an option:")
    write("1. Subscribe to a publisher")
    write("2. Unsubscribe from a publisher")
    write("3. Quit")

    status = 0
    try:
        while not stop_event.is_set():
            write("Enter your choice:", newline=False)
            choice = _read_int(stdin)
            if choice == 3 or stop_event.is_set():
                break
            if choice not in (1, 2):
                write("Invalid choice. Please try again.")
                continue
            write("Enter the ID of the publisher: ", newline=False)
            publisher_id = _read_int(stdin)
            if publisher_id is None:
                write("Invalid choice. Please try again.")
                continue
            try:
                if choice == 1:
                    reply = client.subscribe(publisher_id)
                else:
                    reply = client.unsubscribe(publisher_id)
            except (TimeoutError, OSError) as exc:
                write(f"Error: Failed to receive data from server: {exc}")
                status = 1
                break
            write(f"Server Response: {reply}")
            if reply == EXIT.decode("ascii"):
                break
            if choice == 2 and reply == UNSUBSCRIBED_BY_ADMIN.decode("ascii"):
                status = 1
                break
    except EOFError:
        pass
    finally:
        stop_event.set()
        receiver.join()
    return status


def run_stress_client(
    publisher_id: int,
    server_addr: Address,
    stop_event: threading.Event,
    stdout: TextIO | None = None,
) -> int:
    """Subscribe from a fresh port and print messages until stopped or told to exit."""
    write = _writer(stdout if stdout is not None else sys.stdout)
    client = SubscriberClient(server_addr)
    received = 0
    try:
        client.sock.sendto(subscribe_request(publisher_id), server_addr)
        port = client.address[1]
        write(f"Subscriber socket bound to port: {port}")
        while not stop_event.is_set():
            try:
                if not _readable(client.sock, POLL_INTERVAL):
                    continue
                data, _ = client.sock.recvfrom(MAX_BUFFER_SIZE)
            except (OSError, ValueError) as exc:
                write(f"select() error while waiting for messages: {exc}")
                break
            if data == EXIT:
                stop_event.set()
                break
            text = data.decode("utf-8", errors="replace")
            write(f"SubscriberID: {port} Message from Publisher {publisher_id}: {text}")
            received += 1
        write(f"Shutdown signal received, exiting thread for Publisher {publisher_id}.")
    finally:
        client.close()
    return received


def run_stress_test(
    count: int,
    server_addr: Address,
    stop_event: threading.Event,
    stdout: TextIO | None = None,
) -> int:
    """Spread ``count`` subscribers over all publishers; return the messages they got."""
    stdout = stdout if stdout is not None else sys.stdout
    write = _writer(stdout)

    lister = SubscriberClient(server_addr)
    try:
        publishers = lister.request_publishers()
    except (TimeoutError, OSError):
        write("Failed to retrieve publisher list.")
        return 0
    finally:
        lister.close()

    write(f"Publisher list: {','.join(str(pid) for pid in publishers)}")
    if not publishers:
        write("No publishers available for subscription.")
        return 0
    write(f"Parsed {len(publishers)} publishers for subscription.")

    results = [0] * count

    def client(index: int) -> None:
        publisher_id = publishers[index % len(publishers)]
        try:
            results[index] = run_stress_client(publisher_id, server_addr, stop_event, stdout)
        except OSError as exc:
            write(f"Failed to run subscriber for Publisher {publisher_id}: {exc}")

    threads = [
        threading.Thread(target=client, args=(index,), name=f"stress-subscriber-{index}")
        for index in range(count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    write("Stress test completed.")
    return sum(results)


def main(argv: list[str] | None = None) -> int:
    """Start a subscriber, either interactive or as a stress test."""
    parser = argparse.ArgumentParser(description="Subscriber for the UDP broker.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=SUBSCRIBER_PORT)
    parser.add_argument("--mode", choices=("interactive", "stress"))
    parser.add_argument("--count", type=int, default=STRESS_COUNT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    server_addr = (args.host, args.port)
    mode = args.mode
    if mode is None:
        print("Choose mode:")
        print("1. Standard communication with server")
        print("2. Stress test")
        print("Enter your choice: ", end="", flush=True)
        mode = {"1": "interactive", "2": "stress"}.get(sys.stdin.readline().strip())

    if mode == "interactive":
        print("Starting standard communication...")
        client = SubscriberClient(server_addr)
        try:
            status = run_interactive(client)
        finally:
            client.close()
    elif mode == "stress":
        print("Starting stress test...")
        stop_event = threading.Event()
        status = 0
        try:
            run_stress_test(args.count, server_addr, stop_event)
        except KeyboardInterrupt:
            stop_event.set()
    else:
        print("Invalid choice. Exiting.")
        return 1

    print("Subscriber stopped.")
    return status