"""Hub exceptions.

Delivery problems are never raised; a full queue is a drop, not an error.
These cover the few calls that can actually be refused.
"""


class HubError(Exception):
    """Base class for every error raised by the hub."""


class InvalidSubscriberKeyError(HubError, ValueError):
    """Raised when a stream is registered without a usable subscriber key."""


class SubscriberLimitError(HubError):
    """Raised when a subscriber already holds the maximum number of streams."""

    def __init__(self, subscriber_key: str, limit: int):
        self.subscriber_key = subscriber_key
        self.limit = limit
        super().__init__(
            f"Subscriber {subscriber_key!r} already has {limit} open stream(s)"
        )


class HubClosedError(HubError):
    """Raised when registering on a hub that has been shut down."""
