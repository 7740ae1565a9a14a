"""Interactive administrator console that runs alongside the broker."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import deque
from typing import Any, Callable, TextIO

from udpbroker.protocol import PUBLISHER_PORT, SUBSCRIBER_PORT, UNSUBSCRIBED_BY_ADMIN
from udpbroker.registry import DuplicateSubscriberError, PublisherNotFoundError
from udpbroker.server import THREAD_POOL_SIZE, BrokerServer
from udpbroker.subscribers import SubscriberListFullError, SubscriberNotFoundError

log = logging.getLogger(__name__)

MAX_SUBSCRIBER_LIMIT = 100

MENU = "\n".join(
    [
        "Admin Console Started. Type a number for commands:",
        "  1 - List all active publishers",
        "  2 - Change Publishers Max Size for Subscribers",
        "  3 - Add Subscriber to a Publisher",
        "  4 - Remove Subscriber from Publisher",
        "  5 - Shut down the server",
    ]
)

_ID_RETRY = "Invalid input. Please enter a positive integer for {}'s ID: "
_SIZE_RETRY = (
    f"Invalid input. Please enter a number between 0 and {MAX_SUBSCRIBER_LIMIT} for size: "
)


def _non_negative(value: int) -> bool:
    return value >= 0


def _valid_size(value: int) -> bool:
    return 0 <= value <= MAX_SUBSCRIBER_LIMIT


class AdminConsole:
    """Reads numbered commands and applies them to a running broker."""

    def __init__(
        self,
        server: BrokerServer,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.server = server
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._tokens: deque[str] = deque()

    # -- operations -------------------------------------------------------

    def list_publishers(self) -> str:
        """Describe every registered publisher and its subscribers."""
        registry = self.server.registry
        if not len(registry):
            return "There are no Publishers"
        return "Listing all active publishers:\n" + registry.describe()

    def change_max_size(self, publisher_id: int, max_size: int) -> None:
        """Change how many subscribers a publisher may have (0 to 100)."""
        if not _valid_size(max_size):
            raise ValueError(
                f"max size must be between 0 and {MAX_SUBSCRIBER_LIMIT}, got {max_size}"
            )
        self.server.registry.set_max_subscribers(publisher_id, max_size)

    def _locate(self, subscriber_id: int, publisher_id: int) -> tuple[Any, tuple[str, int]]:
        registry = self.server.registry
        if publisher_id not in registry:
            raise PublisherNotFoundError(publisher_id)
        current = registry.find_by_subscriber(subscriber_id)
        if current is None:
            raise SubscriberNotFoundError(subscriber_id)
        subscribers = registry.subscribers(current)
        sock = subscribers.get_socket(subscriber_id)
        if sock is None:
            raise SubscriberNotFoundError(subscriber_id)
        addr = subscribers.get_address(subscriber_id)
        if addr[0] in ("", "0.0.0.0"):
            raise ValueError(f"Invalid address for subscriber ID {subscriber_id}")
        return sock, addr

    def add_subscriber(self, subscriber_id: int, publisher_id: int) -> None:
        """Subscribe an already known subscriber to another publisher."""
        sock, addr = self._locate(subscriber_id, publisher_id)
        self.server.registry.add_subscriber(publisher_id, subscriber_id, sock, addr)

    def remove_subscriber(self, subscriber_id: int, publisher_id: int) -> None:
        """Tell a subscriber it was unsubscribed, then remove it from a publisher."""
        sock, addr = self._locate(subscriber_id, publisher_id)
        try:
            sock.sendto(UNSUBSCRIBED_BY_ADMIN, addr)
        except OSError as exc:
            log.warning("Failed to notify subscriber %d: %s", subscriber_id, exc)
        self.server.registry.remove_subscriber(publisher_id, subscriber_id)

    # -- console ----------------------------------------------------------

    def _write(self, text: str, newline: bool = True) -> None:
        self._stdout.write(text + ("\n" if newline else ""))
        self._stdout.flush()

    def _next_int(self) -> int | None:
        while not self._tokens:
            line = self._stdin.readline()
            if not line:
                raise EOFError
            self._tokens.extend(line.split())
        token = self._tokens.popleft()
        try:
            return int(token)
        except ValueError:
            self._tokens.clear()
            return None

    def _ask(self, prompt: str, valid: Callable[[int], bool], retry: str) -> int:
        self._write(prompt, newline=False)
        while True:
            value = self._next_int()
            if value is not None and valid(value):
                return value
            self._write(retry, newline=False)

    def _report(self, action: Callable[[], None], success: str) -> None:
        try:
            action()
        except PublisherNotFoundError:
            self._write("Publisher with that ID doesnt exist")
        except SubscriberNotFoundError:
            self._write("Subscriber with that ID doesnt exist")
        except DuplicateSubscriberError:
            self._write("Can't add subscriber to the same publisher twice")
        except SubscriberListFullError:
            self._write("Max subscriber list size reached for this publisher")
        except ValueError as exc:
            self._write(str(exc))
        else:
            self._write(success)

    def _command_list(self) -> None:
        self._write(self.list_publishers())

    def _command_change(self) -> None:
        publisher_id = self._ask(
            "Enter Publisher's ID: ", _non_negative, _ID_RETRY.format("Publisher")
        )
        max_size = self._ask(
            f"Enter new size (0-{MAX_SUBSCRIBER_LIMIT}): ", _valid_size, _SIZE_RETRY
        )
        self._report(
            lambda: self.change_max_size(publisher_id, max_size),
            f"Max size for publisher {publisher_id} changed to {max_size}",
        )

    def _ask_pair(self) -> tuple[int, int]:
        subscriber_id = self._ask(
            "Enter Subscriber's ID: ", _non_negative, _ID_RETRY.format("Subscriber")
        )
        publisher_id = self._ask(
            "Enter Publisher's ID: ", _non_negative, _ID_RETRY.format("Publisher")
        )
        return subscriber_id, publisher_id

    def _command_add(self) -> None:
        subscriber_id, publisher_id = self._ask_pair()
        self._report(
            lambda: self.add_subscriber(subscriber_id, publisher_id),
            f"Subscriber {subscriber_id} added to publisher {publisher_id}",
        )

    def _command_remove(self) -> None:
        subscriber_id, publisher_id = self._ask_pair()
        self._report(
            lambda: self.remove_subscriber(subscriber_id, publisher_id),
            f"Subscriber {subscriber_id} removed from publisher {publisher_id}",
        )

    def run(self) -> None:
        """Read commands until shutdown is requested or input ends."""
        handlers = {
            1: self._command_list,
            2: self._command_change,
            3: self._command_add,
            4: self._command_remove,
        }
        self._write(MENU)
        try:
            while not self.server.shutting_down:
                self._write(">> ", newline=False)
                command = self._next_int()
                if command is None:
                    self._write("Invalid input. Please enter a valid number (1-5):")
                    continue
                if command == 5:
                    self._write("Initiating graceful shutdown...")
                    self.server.stop()
                    return
                handler = handlers.get(command)
                if handler is None:
                    self._write("Unknown command. Please type a number from 1 to 5.")
                    continue
                handler()
        except EOFError:
            return


def main(argv: list[str] | None = None) -> int:
    """Run the broker with an administrator console on standard input."""
    parser = argparse.ArgumentParser(description="Publish/subscribe broker over UDP.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--publisher-port", type=int, default=PUBLISHER_PORT)
    parser.add_argument("--subscriber-port", type=int, default=SUBSCRIBER_PORT)
    parser.add_argument("--workers", type=int, default=THREAD_POOL_SIZE)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    server = BrokerServer(args.host, args.publisher_port, args.subscriber_port, args.workers)
    try:
        with server:
            AdminConsole(server).run()
    except OSError as exc:
        log.error("Cannot start server: %s", exc)
        return 1
    print("Server stopped.")
    return 0