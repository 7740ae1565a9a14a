# udpbroker

A small publish/subscribe broker that speaks plain UDP datagrams. It has
three parts:

* **the broker** (`udpbroker-admin`), with an interactive admin console,
* **publishers** (`udpbroker-publisher`), which register with the broker and
  send text messages,
* **subscribers** (`udpbroker-subscriber`), which list the registered
  publishers, subscribe to them and print every message forwarded to them.

The package uses only the standard library.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running

### Broker

```
udpbroker-admin [--host 0.0.0.0] [--publisher-port 12345] [--subscriber-port 12346] [--workers 4]
```

The broker listens for publishers on one UDP port and for subscribers on
another, and runs a pool of worker threads that deliver queued messages. The
admin console on standard input accepts numbered commands:

| Command | Action |
|---------|--------|
| 1 | List all registered publishers and their subscribers |
| 2 | Change a publisher's maximum number of subscribers (0–100) |
| 3 | Subscribe an already known subscriber to another publisher |
| 4 | Remove a subscriber from a publisher; the subscriber is sent `Unsubscribed by ADMIN` |
| 5 | Shut the broker down |

On shutdown (command 5, or end of standard input) the receiving threads send
`EXIT` to every registered publisher and to every port that has subscribed,
both on `127.0.0.1`, and the broker stops.

### Publisher

```
udpbroker-publisher [--host 127.0.0.1] [--port 12345] [--mode interactive|stress]
                    [--count 50] [--interval 8.0] [--base-port 50000]
```

Without `--mode` the program asks for `1` (interactive) or `2` (stress test).

* **interactive**: enter the maximum number of subscribers, then type
  messages, one per line. `exit` or end of input stops the publisher; so does
  an `EXIT` from the broker.
* **stress**: starts `--count` publishers bound to ports `--base-port`,
  `--base-port + 1`, … Each registers (its index is used as its maximum
  number of subscribers) and then sends one word every `--interval` seconds
  until the broker answers with `EXIT` or the program is interrupted.

### Subscriber

```
udpbroker-subscriber [--host 127.0.0.1] [--port 12346] [--mode interactive|stress] [--count 50]
```

Without `--mode` the program asks for `1` (interactive) or `2` (stress test).

* **interactive**: the list of publisher IDs is shown; then subscribe (`1`),
  unsubscribe (`2`) or quit (`3`). Messages from publishers are printed as
  they arrive; an `EXIT` from the broker ends the program.
* **stress**: fetches the publisher list and starts `--count` subscribers,
  each on its own port, spread round-robin over the publishers. Each prints
  what it receives until one of them gets `EXIT`.

Publisher and subscriber IDs are the UDP source ports of their sockets.

## Wire protocol

Publisher to broker:

```
operacija=1|publisher=<name>|maxsize=<n>      register, allowing at most n subscribers
operacija=2|publisher=<name>|message=<text>   publish a message (under 256 bytes)
```

The broker answers every publisher datagram with `Acknowledged`.

Subscriber to broker:

```
get_publishers      answered with comma-separated IDs, or "No publishers available"
subscribe:<id>      answered with "Subscribed" or "Not Able to Subscribe"
unsubscribe:<id>    answered with "Unsubscribed" or "Unable to unsubscribe"
```

Any other subscriber datagram gets no answer.

The helpers in `udpbroker.protocol` build and read these messages:
`registration_message`, `text_message`, `parse_publisher_message`,
`subscribe_request`, `unsubscribe_request`, `parse_subscriber_request`,
`format_publisher_ids` and `parse_publisher_list` (which reads at most 100
IDs).

## Using the broker from Python

```python
from udpbroker.admin import AdminConsole
from udpbroker.server import BrokerServer

with BrokerServer("127.0.0.1", 12345, 12346, 4) as server:
    AdminConsole(server).run()
```

`BrokerServer.start()` binds both sockets and starts the two receiving
threads and the delivery workers. `stop()` sets the shutdown flag; within
about a second the receiving threads notice it, send `EXIT` to publishers and
subscribers, and finish. `wait()` joins all threads, then closes the sockets
and clears the registry. Used as a context manager the server is started on
entry and stopped and waited for on exit.

`handle_publisher_datagram` and `handle_subscriber_datagram` process one
datagram and return the reply bytes (or `None`), and `deliver` sends a message
to every subscriber of a publisher, so they can be driven without a network
loop.

The building blocks can also be used on their own:

* `udpbroker.registry.PublisherRegistry` — thread-safe table of publishers and
  their subscriber lists; raises `PublisherNotFoundError`,
  `DuplicatePublisherError` and `DuplicateSubscriberError`,
* `udpbroker.subscribers.SubscriberList` — a bounded list of subscribers for
  one publisher, newest first; raises `SubscriberListFullError` and
  `SubscriberNotFoundError`,
* `udpbroker.message_queue.MessageQueue` — a thread-safe FIFO of
  `(publisher_id, message)` pairs whose `get` raises `QueueEmptyError` after
  its timeout,
* `udpbroker.subscriber.SubscriberClient` — a client for the subscriber port
  with `request_publishers`, `subscribe`, `unsubscribe` and
  `receive_messages`.

## What it does not do

* Nothing is stored: publishers, subscriptions and queued messages live in
  memory only and are gone when the broker stops.
* There is no authentication; any sender can register or subscribe.
* Delivery is plain UDP with no retries or acknowledgement from subscribers.
* Shutdown `EXIT` messages are sent only to `127.0.0.1`, so clients on other
  machines are not told that the broker is stopping.