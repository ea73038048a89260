"""Dispatcher — fans events out to connection queues.

Learn: every send is a `try_put`. A full queue means that one
connection misses the event; the publisher is never blocked, never
retried and never told. That is the whole backpressure policy.

The target set is a snapshot copied from the registry. A connection that
registers or unregisters while a dispatch is in progress may or may not
see that event, which is fine for best-effort delivery.
"""

from typing import Any, Iterable

import structlog

from streamhub.hub.connection import ClientConnection
from streamhub.hub.events import Event
from streamhub.hub.registry import ConnectionRegistry

logger = structlog.get_logger()


class Dispatcher:
    """Publishes events to registered connections."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def _fan_out(self, targets: Iterable[ClientConnection], event: Event) -> int:
        delivered = 0
        dropped = 0
        for conn in targets:
            before = conn.dropped
            if conn.try_put(event):
                delivered += 1
            elif conn.dropped > before:
                dropped += 1
        self.registry.record_dispatch(delivered, dropped)
        return delivered

    # ─── Publishing ───────────────────────────────────────

    def broadcast(self, event: Event) -> int:
        """Send to every live connection. Returns how many accepted it."""
        delivered = self._fan_out(self.registry.connections(), event)
        logger.debug("hub.broadcast", event_type=event.event_type, delivered=delivered)
        return delivered

    def send_to_subscriber(self, subscriber_key: str, event: Event) -> int:
        """Send to every connection of one subscriber. Unknown key → 0."""
        targets = self.registry.connections_for(subscriber_key)
        if not targets:
            return 0
        delivered = self._fan_out(targets, event)
        logger.debug(
            "hub.send_to_subscriber",
            subscriber_key=subscriber_key,
            event_type=event.event_type,
            delivered=delivered,
        )
        return delivered

    def send_to_connection(self, connection_id: str, event: Event) -> bool:
        """Send to a single connection. Unknown id → False."""
        conn = self.registry.get(connection_id)
        if conn is None:
            return False
        return self._fan_out([conn], event) == 1

    # ─── Convenience ──────────────────────────────────────

    def notify_all(self, event_type: str, data: Any) -> int:
        """Broadcast `data` as a new event with a fresh id."""
        return self.broadcast(Event.create(event_type, data))

    def notify_subscriber(self, subscriber_key: str, event_type: str, data: Any) -> int:
        """Send `data` to one subscriber as a new event with a fresh id."""
        return self.send_to_subscriber(subscriber_key, Event.create(event_type, data))
