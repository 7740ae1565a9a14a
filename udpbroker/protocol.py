"""Wire format spoken between publishers, subscribers and the broker."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from udpbroker.message_queue import MAX_MESSAGE_SIZE

PUBLISHER_PORT = 12345
SUBSCRIBER_PORT = 12346
MAX_BUFFER_SIZE = 1024
MAX_PUBLISHER_LIST = 100

EXIT = b"EXIT"
ACKNOWLEDGED = b"Acknowledged"
NO_PUBLISHERS = b"No publishers available"
SUBSCRIBED = b"Subscribed"
SUBSCRIBE_FAILED = b"Not Able to Subscribe"
UNSUBSCRIBED = b"Unsubscribed"
UNSUBSCRIBE_FAILED = b"Unable to unsubscribe"
UNSUBSCRIBED_BY_ADMIN = b"Unsubscribed by ADMIN"

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FIELD = re.compile(r"\S{1,15}")


class Operation(enum.IntEnum):
    """What a publisher datagram asks for."""

    REGISTER = 1
    MESSAGE = 2


@dataclass(frozen=True)
class PublisherRequest:
    """A parsed publisher datagram; the publisher id is the sender's port."""

    operation: Operation
    publisher_id: int
    max_size: int = 0
    message: str = ""


class SubscriberRequestKind(enum.Enum):
    """What a subscriber datagram asks for."""

    GET_PUBLISHERS = "get_publishers"
    SUBSCRIBE = "subscribe:"
    UNSUBSCRIBE = "unsubscribe:"


@dataclass(frozen=True)
class SubscriberRequest:
    """A parsed subscriber datagram."""

    kind: SubscriberRequestKind
    publisher_id: int | None = None


def _text(data: bytes | str) -> str:
    return data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data


def _leading_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _field(token: str, prefix: str) -> str:
    if not token.startswith(prefix):
        raise ValueError(f"expected field {prefix!r}, got {token!r}")
    match = _FIELD.match(token[len(prefix):].lstrip())
    if match is None:
        raise ValueError(f"field {prefix!r} has no value")
    return match.group()


def parse_publisher_message(data: bytes | str, client_port: int) -> PublisherRequest:
    """Parse ``operacija=..|publisher=..|maxsize=..`` or ``..|message=..``."""
    tokens = [token for token in _text(data).split("|") if token]
    if not tokens:
        raise ValueError("empty publisher message")
    op_value = _leading_int(_field(tokens[0], "operacija="))
    operation = Operation.REGISTER if op_value == Operation.REGISTER else Operation.MESSAGE
    third = tokens[2] if len(tokens) > 2 else None

    if operation is Operation.REGISTER:
        if third is None:
            raise ValueError("registration without maxsize")
        max_size = _leading_int(_field(third, "maxsize="))
        if max_size < 0:
            raise ValueError("maxsize must not be negative")
        return PublisherRequest(operation, client_port, max_size=max_size)

    message = ""
    if third is not None:
        start = third.find("message=")
        if start != -1:
            message = third[start + len("message="):]
    if len(message.encode("utf-8")) >= MAX_MESSAGE_SIZE:
        raise ValueError(f"message longer than {MAX_MESSAGE_SIZE - 1} bytes")
    return PublisherRequest(operation, client_port, message=message)


def registration_message(name: str, max_size: int) -> bytes:
    """Build the datagram a publisher sends to register itself."""
    return f"operacija=1|publisher={name}|maxsize={max_size}".encode("utf-8")


def text_message(name: str, message: str) -> bytes:
    """Build the datagram a publisher sends to publish a message."""
    return f"operacija=2|publisher={name}|message={message}".encode("utf-8")


def format_publisher_ids(publisher_ids: list[int]) -> bytes:
    """Serialise publisher ids as a comma separated list for a subscriber."""
    if not publisher_ids:
        return NO_PUBLISHERS
    text = ",".join(str(publisher_id) for publisher_id in publisher_ids)
    if len(text) + 1 >= MAX_BUFFER_SIZE:
        raise ValueError("publisher id list does not fit in one datagram")
    return text.encode("ascii")


def parse_publisher_list(text: bytes | str) -> list[int]:
    """Parse the broker's comma separated publisher list (at most 100 ids)."""
    body = _text(text)
    if body == NO_PUBLISHERS.decode("ascii"):
        return []
    tokens = [token for token in body.split(",") if token]
    return [_leading_int(token) for token in tokens[:MAX_PUBLISHER_LIST]]


def parse_subscriber_request(text: bytes | str) -> SubscriberRequest:
    """Parse a subscriber datagram into a request."""
    body = _text(text)
    for kind in SubscriberRequestKind:
        if body.startswith(kind.value):
            if kind is SubscriberRequestKind.GET_PUBLISHERS:
                return SubscriberRequest(kind)
            return SubscriberRequest(kind, _leading_int(body[len(kind.value):]))
    raise ValueError(f"unknown subscriber request: {body!r}")


def subscribe_request(publisher_id: int) -> bytes:
    """Build a subscription request."""
    return f"subscribe:{publisher_id}".encode("ascii")


def unsubscribe_request(publisher_id: int) -> bytes:
    """Build an unsubscription request."""
    return f"unsubscribe:{publisher_id}".encode("ascii")