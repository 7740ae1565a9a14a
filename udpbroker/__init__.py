"""UDP publish/subscribe broker with an admin console, publisher and subscriber clients."""

__version__ = "0.1.0"

__all__ = [
    "admin",
    "message_queue",
    "protocol",
    "publisher",
    "registry",
    "server",
    "subscriber",
    "subscribers",
]