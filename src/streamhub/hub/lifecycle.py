"""Per-connection consumption loop and teardown.

Learn: the transport owns one consumer per connection. It waits for
either the next queued event or the connection's cancellation signal:

    event     → write it; a failed write tears the connection down
    cancelled → stop draining

Whatever ends the loop (cancel, write error, task cancellation when the
client goes away, hub shutdown), the `finally` calls unregister(), which
is idempotent. So teardown runs exactly once no matter how many of those
happen at the same time.
"""

from typing import AsyncIterator, Awaitable, Callable

import structlog

from streamhub.hub.connection import ClientConnection
from streamhub.hub.events import Event
from streamhub.hub.registry import ConnectionRegistry

logger = structlog.get_logger()

Writer = Callable[[Event], Awaitable[None]]


async def pump(
    registry: ConnectionRegistry,
    conn: ClientConnection,
    write: Writer,
) -> int:
    """Drain `conn` into `write` until cancelled or a write fails.

    Returns the number of events written. Write errors are logged and end
    the loop; they are never raised to the caller.
    """
    written = 0
    try:
        while True:
            event = await conn.next_event()
            if event is None:
                break
            try:
                await write(event)
            except Exception as e:
                logger.warning(
                    "hub.write_failed",
                    connection_id=conn.id,
                    subscriber_key=conn.subscriber_key,
                    event_type=event.event_type,
                    error=str(e),
                )
                break
            written += 1
    finally:
        registry.unregister(conn.id)
    return written


async def iter_events(
    registry: ConnectionRegistry,
    conn: ClientConnection,
) -> AsyncIterator[Event]:
    """Same loop as pump(), as an async generator for pull-style transports.

    The consumer writes each yielded event itself. When the consumer stops
    iterating (or is cancelled because the client disconnected) the
    generator's `finally` unregisters the connection.
    """
    try:
        while True:
            event = await conn.next_event()
            if event is None:
                return
            yield event
    finally:
        registry.unregister(conn.id)
