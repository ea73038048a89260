"""Pydantic schemas for the SSE admin API.

Learn: These define the contract for publishing through HTTP and for
reading hub stats. Request bodies keep `event`/`data` loosely typed so
the routes can answer 400 with the same message whichever is missing.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from streamhub.hub import HubStats


# ─── Publish requests (admin → hub) ─────────────────────


class BroadcastRequest(BaseModel):
    """Send one event to every open stream."""
    event: str = Field("", description="Event type, e.g. 'announcement'")
    data: Any = Field(None, description="JSON payload")
    id: Optional[str] = Field(None, description="Event id (generated if omitted)")
    retry: Optional[int] = Field(None, description="Client reconnect hint in ms")


class SendToSubscriberRequest(BroadcastRequest):
    """Send one event to every stream of a subscriber."""
    subscriber_key: str = Field("", description="Subscriber key, e.g. 'user:42'")


class SendToConnectionRequest(BroadcastRequest):
    """Send one event to a single stream."""
    connection_id: str = Field("", description="Connection id from the 'connected' event")


# ─── Responses (hub → admin) ────────────────────────────


class DispatchResult(BaseModel):
    success: bool = True
    message: str
    delivered: int = 0


class HubTotalsRead(BaseModel):
    registered: int
    unregistered: int
    published: int
    delivered: int
    dropped: int


class HubStatsRead(BaseModel):
    """Point-in-time hub statistics."""
    total_connections: int
    subscriber_connections: dict[str, int]
    dropped_by_connection: dict[str, int]
    delivered_by_connection: dict[str, int]
    totals: HubTotalsRead
    closed: bool

    @classmethod
    def from_stats(cls, stats: HubStats) -> "HubStatsRead":
        return cls(
            total_connections=stats.total_connections,
            subscriber_connections=stats.subscriber_connections,
            dropped_by_connection=stats.dropped_by_connection,
            delivered_by_connection=stats.delivered_by_connection,
            totals=HubTotalsRead(**vars(stats.totals)),
            closed=stats.closed,
        )


class StatsResponse(BaseModel):
    success: bool = True
    data: HubStatsRead
