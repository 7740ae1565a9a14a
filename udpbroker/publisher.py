"""Publisher client: an interactive sender and a many-publisher stress test."""

from __future__ import annotations

import argparse
import logging
import select
import socket
import sys
import threading
from typing import TextIO

from udpbroker.protocol import (
    EXIT,
    MAX_BUFFER_SIZE,
    PUBLISHER_PORT,
    registration_message,
    text_message,
)

log = logging.getLogger(__name__)

PUBLISHER_NAME = "publisher"
STRESS_NAME = "stress_test"
STRESS_COUNT = 50
STRESS_INTERVAL = 8.0
STRESS_BASE_PORT = 50000
POLL_INTERVAL = 0.5
REPLY_TIMEOUT = 1.0

RANDOM_WORDS = (
    "jabuka",
    "kuca",
    "covek",
    "prozor",
    "reka",
    "sunce",
    "knjiga",
    "automobil",
    "stolica",
    "grad",
)

Address = tuple[str, int]


def _readable(sock: socket.socket, timeout: float) -> bool:
    ready, _, _ = select.select([sock], [], [], timeout)
    return bool(ready)


def run_interactive(
    sock: socket.socket,
    server_addr: Address,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Register with the broker, then send each typed line; return how many were sent."""
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    def write(text: str, newline: bool = True) -> None:
        stdout.write(text + ("\n" if newline else ""))
        stdout.flush()

    write("Enter the max size: ", newline=False)
    raw = stdin.readline().strip()
    try:
        max_size = int(raw)
    except ValueError:
        raise ValueError(f"invalid max size: {raw!r}") from None
    if max_size < 0:
        raise ValueError(f"max size must not be negative, got {max_size}")

    sock.sendto(registration_message(PUBLISHER_NAME, max_size), server_addr)

    sent = 0
    while True:
        if _readable(sock, POLL_INTERVAL):
            try:
                data, _ = sock.recvfrom(MAX_BUFFER_SIZE)
            except OSError as exc:
                log.warning("recvfrom failed: %s", exc)
            else:
                if data == EXIT:
                    write("EXIT message received from server. Terminating...")
                    break
                write(f"Received from server: {data.decode('utf-8', errors='replace')}")

        write("Enter a message to send (or 'exit' to quit): ", newline=False)
        line = stdin.readline()
        if not line:
            break
        message = line.rstrip("\r\n")
        if message == "exit":
            write("Exiting message sender...")
            break
        sock.sendto(text_message(PUBLISHER_NAME, message), server_addr)
        sent += 1
    return sent


def _await_reply(sock: socket.socket, index: int) -> bytes | None:
    if not _readable(sock, REPLY_TIMEOUT):
        return None
    data, _ = sock.recvfrom(MAX_BUFFER_SIZE)
    log.info(
        "Response from server for publisher %d: %s",
        sock.getsockname()[1],
        data.decode("utf-8", errors="replace"),
    )
    return data


def run_stress_client(
    index: int,
    server_addr: Address,
    stop_event: threading.Event,
    interval: float = STRESS_INTERVAL,
    base_port: int = STRESS_BASE_PORT,
) -> int:
    """Register from port ``base_port + index`` and publish words until stopped."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("", base_port + index))
        sock.sendto(registration_message(STRESS_NAME, index), server_addr)
        if _await_reply(sock, index) == EXIT:
            return 0

        sent = 0
        while not stop_event.wait(interval):
            word = RANDOM_WORDS[(sent + 1) % len(RANDOM_WORDS)]
            sock.sendto(text_message(STRESS_NAME, word), server_addr)
            sent += 1
            if _await_reply(sock, index) == EXIT:
                break
        log.info("Shutting down stress publisher %d", base_port + index)
        return sent


def run_stress_test(
    count: int,
    server_addr: Address,
    stop_event: threading.Event,
    interval: float = STRESS_INTERVAL,
    base_port: int = STRESS_BASE_PORT,
) -> int:
    """Run ``count`` stress publishers at once; return the messages they sent in total."""
    results = [0] * count

    def client(index: int) -> None:
        try:
            results[index] = run_stress_client(
                index, server_addr, stop_event, interval, base_port
            )
        except OSError as exc:
            log.error("Stress publisher %d failed: %s", base_port + index, exc)

    log.info("Stress test started...")
    threads = [
        threading.Thread(target=client, args=(index,), name=f"stress-publisher-{index}")
        for index in range(count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    log.info("Stress test completed.")
    return sum(results)


def main(argv: list[str] | None = None) -> int:
    """Start a publisher, either interactive or as a stress test."""
    parser = argparse.ArgumentParser(description="Publisher for the UDP broker.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=PUBLISHER_PORT)
    parser.add_argument("--mode", choices=("interactive", "stress"))
    parser.add_argument("--count", type=int, default=STRESS_COUNT)
    parser.add_argument("--interval", type=float, default=STRESS_INTERVAL)
    parser.add_argument("--base-port", type=int, default=STRESS_BASE_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    server_addr = (args.host, args.port)
    mode = args.mode
    if mode is None:
        print("Choose an option:")
        print("1. Normal message sending")
        print("2. Stress test")
        print("Enter your choice: ", end="", flush=True)
        mode = {"1": "interactive", "2": "stress"}.get(sys.stdin.readline().strip())

    if mode == "interactive":
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            try:
                run_interactive(sock, server_addr)
            except ValueError as exc:
                print(exc)
                return 1
    elif mode == "stress":
        stop_event = threading.Event()
        try:
            run_stress_test(args.count, server_addr, stop_event, args.interval, args.base_port)
        except KeyboardInterrupt:
            stop_event.set()
    else:
        print("Invalid choice. Exiting.")
        return 1

    print("Publisher stopped.")
    return 0