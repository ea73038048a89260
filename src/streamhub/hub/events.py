"""Event value and well-known event types.

Learn: an Event is what publishers hand to the Dispatcher and what the
per-connection consumer eventually writes to the wire. The payload is
opaque to the hub; it only has to be JSON serializable for the SSE
adapter.
"""

import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

# ─── Event types emitted by the hub itself ───────────────

CONNECTED = "connected"
PING = "ping"


@dataclass(frozen=True)
class Event:
    """One structured event.

    `id` becomes the SSE `id:` line (clients echo it back as
    Last-Event-ID), `retry_ms` the `retry:` reconnection hint.
    """

    event_type: str
    payload: Any = None
    id: Optional[str] = None
    retry_ms: Optional[int] = None

    @classmethod
    def create(cls, event_type: str, payload: Any = None, **kwargs) -> "Event":
        """Build an event stamped with a fresh uuid4 id."""
        return cls(event_type=event_type, payload=payload, id=str(uuid.uuid4()), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event": self.event_type, "data": self.payload}
        if self.id:
            data["id"] = self.id
        if self.retry_ms and self.retry_ms > 0:
            data["retry"] = self.retry_ms
        return data


def heartbeat() -> Event:
    return Event(event_type=PING, payload={"timestamp": int(time.time())})


def connected(connection_id: str) -> Event:
    return Event(
        event_type=CONNECTED,
        payload={"client_id": connection_id, "timestamp": int(time.time())},
    )
