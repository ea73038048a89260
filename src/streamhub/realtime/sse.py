"""SSE endpoint — streams hub events to browser clients.

Learn: Each client connects to GET /sse/stream with a bearer token
(header, or ?token= for EventSource). The handler:
1. Resolves the subscriber key from the token's `sub` claim
2. Registers a connection with the hub
3. Sends a `connected` frame carrying the connection id
4. Drains the connection's queue into the response, one frame per event

When the client goes away Starlette cancels the response task; the
cancellation lands in the consumer's wait and the lifecycle generator
unregisters the connection. HubStreamingResponse unregisters again around
the whole response, which also covers a client that leaves before the
first frame.

Frame format (one event):

    event: <type>
    id: <id>              (if set)
    retry: <ms>           (if > 0)
    data: <json payload>
    <blank line>
"""

import json
from typing import AsyncIterator, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from streamhub.auth.dependencies import CurrentIdentity, get_current_user_optional
from streamhub.config import settings
from streamhub.hub import (
    ClientConnection,
    EventHub,
    HubClosedError,
    InvalidSubscriberKeyError,
    SubscriberLimitError,
)
from streamhub.hub.events import Event, connected
from streamhub.hub.lifecycle import iter_events
from streamhub.realtime import get_hub

logger = structlog.get_logger()
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # disable nginx buffering
}


def encode_event(event: Event) -> str:
    """Render one event as an SSE frame."""
    lines = []
    if event.event_type:
        lines.append(f"event: {event.event_type}")
    if event.id:
        lines.append(f"id: {event.id}")
    if event.retry_ms and event.retry_ms > 0:
        lines.append(f"retry: {event.retry_ms}")
    data = json.dumps(event.payload, default=str, separators=(",", ":"))
    lines.append(f"data: {data}")
    return "\n".join(lines) + "\n\n"


class HubStreamingResponse(StreamingResponse):
    """StreamingResponse that unregisters its connection when the response ends.

    Covers the case the generator cannot: a client that disconnects before
    the first frame is sent, so the generator never starts.
    """

    def __init__(self, content, hub: EventHub, connection_id: str, **kwargs):
        super().__init__(content, **kwargs)
        self.hub = hub
        self.connection_id = connection_id

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.hub.unregister(self.connection_id)


async def event_stream(hub: EventHub, conn: ClientConnection) -> AsyncIterator[str]:
    """Encoded frames for one connection, starting with `connected`."""
    try:
        yield encode_event(connected(conn.id))
        async for event in iter_events(hub.registry, conn):
            yield encode_event(event)
    finally:
        hub.unregister(conn.id)
        logger.info("sse.stream_closed", connection_id=conn.id)


def _resolve_subscriber(
    identity: Optional[CurrentIdentity], subscriber: Optional[str]
) -> str:
    if identity is not None:
        return identity.subject
    # Development convenience: no token, subscriber named in the query
    if settings.environment == "development" and subscriber:
        return subscriber
    raise HTTPException(
        status_code=401,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.get("/sse/stream")
async def stream(
    request: Request,
    subscriber: Optional[str] = Query(None),
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    hub: EventHub = Depends(get_hub),
):
    """Open a long-lived event stream for the current subscriber."""
    subscriber_key = _resolve_subscriber(identity, subscriber)

    try:
        conn = hub.register(subscriber_key)
    except InvalidSubscriberKeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubscriberLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except HubClosedError:
        raise HTTPException(status_code=503, detail="Event hub is shutting down")

    ip = request.client.host if request.client else "unknown"
    logger.info(
        "sse.stream_opened",
        connection_id=conn.id,
        subscriber_key=subscriber_key,
        ip=ip,
    )

    return HubStreamingResponse(
        event_stream(hub, conn),
        hub,
        conn.id,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
