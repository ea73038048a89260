"""ClientConnection — one subscriber stream's handle.

Learn: each connection is a single-consumer, bounded queue. The
Dispatcher and the KeepAliveTicker are the only writers and they only
ever use `try_put`, which returns immediately. The transport's
consumption loop is the only reader (`next_event`). Because there is
exactly one reader and writers never wait, no per-item locking is needed.

The queue and the cancellation signal are asyncio primitives, so queue
operations must run on the event loop that serves the connection.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog

from streamhub.hub.events import Event

logger = structlog.get_logger()


class ClientConnection:
    """A live stream registered under a subscriber key.

    Created and owned by ConnectionRegistry. Never construct one directly
    outside the registry and tests.
    """

    def __init__(self, subscriber_key: str, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")
        self.id = str(uuid.uuid4())
        self.subscriber_key = subscriber_key
        self.capacity = capacity
        self.created_at = datetime.now(timezone.utc)
        self.last_heartbeat_at = self.created_at
        self.delivered = 0
        self.dropped = 0
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=capacity)
        self._cancelled = asyncio.Event()
        self._closed = False

    def __repr__(self) -> str:
        return (
            f"<ClientConnection id={self.id} subscriber={self.subscriber_key!r} "
            f"pending={self.pending()}/{self.capacity}>"
        )

    # ─── State ────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def pending(self) -> int:
        """Number of events queued and not yet drained."""
        return self._queue.qsize()

    # ─── Writers (Dispatcher, KeepAlive) ──────────────────

    def try_put(self, event: Event) -> bool:
        """Enqueue without waiting.

        Returns False if the queue is full (counted as a drop) or if the
        connection has been cancelled/closed (not counted, the stream is
        going away anyway).
        """
        if self._closed or self._cancelled.is_set():
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "hub.event_dropped",
                connection_id=self.id,
                subscriber_key=self.subscriber_key,
                event_type=event.event_type,
                dropped=self.dropped,
            )
            return False
        self.delivered += 1
        return True

    # ─── Reader (consumption loop) ────────────────────────

    async def next_event(self) -> Optional[Event]:
        """Wait for the next queued event or for cancellation.

        Returns None once the connection is cancelled. Anything still
        queued at that point is abandoned, including an event taken off
        the queue in the same turn the signal fired.
        """
        if self._cancelled.is_set():
            return None
        if not self._queue.empty():
            return self._queue.get_nowait()

        getter = asyncio.ensure_future(self._queue.get())
        stopper = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait(
                {getter, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            getter.cancel()
            stopper.cancel()

        if self._cancelled.is_set():
            return None
        if getter.done() and not getter.cancelled():
            return getter.result()
        return None

    # ─── Teardown ─────────────────────────────────────────

    def cancel(self) -> None:
        """Fire the cancellation signal. The consumer exits on its next wait."""
        self._cancelled.set()

    def close(self) -> bool:
        """Close the connection once. Returns False if it was already closed.

        Only the registry calls this, from unregister() and shutdown().
        """
        if self._closed:
            return False
        self._closed = True
        self._cancelled.set()
        return True
