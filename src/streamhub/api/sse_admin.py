"""SSE admin API — inspect the hub and publish over HTTP.

Learn: Routes (all require the admin scope, applied in api/__init__.py):
- GET    /sse/stats               → hub statistics
- POST   /sse/broadcast           → event to every stream
- POST   /sse/send-to-subscriber  → event to every stream of one subscriber
- POST   /sse/send-to-connection  → event to a single stream
- DELETE /sse/connections/:id     → evict a stream

Publishing never fails because of slow clients; `delivered` in the
response says how many queues accepted the event.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response

from streamhub.hub import EventHub
from streamhub.hub.events import Event
from streamhub.realtime import get_hub
from streamhub.schemas.sse import (
    BroadcastRequest,
    DispatchResult,
    HubStatsRead,
    SendToConnectionRequest,
    SendToSubscriberRequest,
    StatsResponse,
)

logger = structlog.get_logger()
router = APIRouter()


def _to_event(body: BroadcastRequest) -> Event:
    if not body.event or body.data is None:
        raise HTTPException(status_code=400, detail="Event and data are required")
    # A line break would start a new SSE field or frame
    for value in (body.event, body.id or ""):
        if "\n" in value or "\r" in value:
            raise HTTPException(
                status_code=400, detail="Event and id must not contain line breaks"
            )
    return Event(
        event_type=body.event,
        payload=body.data,
        id=body.id or str(uuid.uuid4()),
        retry_ms=body.retry,
    )


@router.get("/sse/stats", response_model=StatsResponse)
async def get_stats(hub: EventHub = Depends(get_hub)):
    """Connection counts and per-connection delivery counters."""
    return StatsResponse(data=HubStatsRead.from_stats(hub.stats()))


@router.post("/sse/broadcast", response_model=DispatchResult)
async def broadcast(body: BroadcastRequest, hub: EventHub = Depends(get_hub)):
    """Broadcast an event to all connected clients."""
    event = _to_event(body)
    delivered = hub.broadcast(event)
    logger.info("sse.broadcast_sent", event_type=event.event_type, delivered=delivered)
    return DispatchResult(message="Broadcast sent to all clients", delivered=delivered)


@router.post("/sse/send-to-subscriber", response_model=DispatchResult)
async def send_to_subscriber(
    body: SendToSubscriberRequest, hub: EventHub = Depends(get_hub)
):
    """Send an event to every stream of one subscriber."""
    if not body.subscriber_key:
        raise HTTPException(status_code=400, detail="subscriber_key is required")
    event = _to_event(body)
    delivered = hub.send_to_subscriber(body.subscriber_key, event)
    logger.info(
        "sse.subscriber_message_sent",
        subscriber_key=body.subscriber_key,
        event_type=event.event_type,
        delivered=delivered,
    )
    return DispatchResult(message="Message sent to subscriber", delivered=delivered)


@router.post("/sse/send-to-connection", response_model=DispatchResult)
async def send_to_connection(
    body: SendToConnectionRequest, hub: EventHub = Depends(get_hub)
):
    """Send an event to a single stream."""
    if not body.connection_id:
        raise HTTPException(status_code=400, detail="connection_id is required")
    event = _to_event(body)
    if hub.registry.get(body.connection_id) is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    accepted = hub.send_to_connection(body.connection_id, event)
    return DispatchResult(
        message="Message sent to connection" if accepted else "Message dropped",
        delivered=int(accepted),
    )


@router.delete("/sse/connections/{connection_id}", status_code=204)
async def evict_connection(connection_id: str, hub: EventHub = Depends(get_hub)):
    """Close a stream. Evicting an unknown or already closed stream is a no-op."""
    if hub.unregister(connection_id):
        logger.info("sse.connection_evicted", connection_id=connection_id)
    return Response(status_code=204)
