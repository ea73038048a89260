"""Event delivery hub — registry, dispatcher, keep-alive, lifecycle.

Learn: there is no module-level hub. The application's composition root
(the FastAPI lifespan in streamhub.main) builds one EventHub and shares
it with routes via app.state; tests build as many isolated hubs as they
need.
"""

from typing import Optional

from streamhub.hub.connection import ClientConnection
from streamhub.hub.dispatcher import Dispatcher
from streamhub.hub.errors import (
    HubClosedError,
    HubError,
    InvalidSubscriberKeyError,
    SubscriberLimitError,
)
from streamhub.hub.events import Event
from streamhub.hub.keepalive import KeepAliveTicker
from streamhub.hub.registry import (
    DEFAULT_QUEUE_CAPACITY,
    ConnectionRegistry,
    HubStats,
    HubTotals,
)


class EventHub:
    """Registry + Dispatcher + KeepAliveTicker wired together."""

    def __init__(
        self,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        heartbeat_interval: float = 30.0,
        max_connections_per_subscriber: int = 0,
    ):
        self.registry = ConnectionRegistry(
            default_capacity=queue_capacity,
            max_connections_per_subscriber=max_connections_per_subscriber,
        )
        self.dispatcher = Dispatcher(self.registry)
        self.keepalive = KeepAliveTicker(self.registry, interval=heartbeat_interval)

    @classmethod
    def from_settings(cls, settings) -> "EventHub":
        return cls(
            queue_capacity=settings.queue_capacity,
            heartbeat_interval=settings.heartbeat_interval_seconds,
            max_connections_per_subscriber=settings.max_connections_per_subscriber,
        )

    def start(self) -> None:
        """Start background heartbeats (needs a running event loop)."""
        self.keepalive.start()

    async def shutdown(self) -> int:
        """Stop heartbeats, then cancel and drop every connection."""
        await self.keepalive.stop()
        return self.registry.shutdown()

    # Shortcuts so publishers only need the hub

    def register(self, subscriber_key: str, capacity: Optional[int] = None) -> ClientConnection:
        return self.registry.register(subscriber_key, capacity)

    def unregister(self, connection_id: str) -> bool:
        return self.registry.unregister(connection_id)

    def broadcast(self, event: Event) -> int:
        return self.dispatcher.broadcast(event)

    def send_to_subscriber(self, subscriber_key: str, event: Event) -> int:
        return self.dispatcher.send_to_subscriber(subscriber_key, event)

    def send_to_connection(self, connection_id: str, event: Event) -> bool:
        return self.dispatcher.send_to_connection(connection_id, event)

    def stats(self) -> HubStats:
        return self.registry.stats()


__all__ = [
    "ClientConnection",
    "ConnectionRegistry",
    "Dispatcher",
    "Event",
    "EventHub",
    "HubClosedError",
    "HubError",
    "HubStats",
    "HubTotals",
    "InvalidSubscriberKeyError",
    "KeepAliveTicker",
    "SubscriberLimitError",
]
