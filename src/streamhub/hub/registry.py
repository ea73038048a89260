"""ConnectionRegistry — owns every live connection.

Learn: two indices, one lock.

    _connections:  connection_id  -> ClientConnection   (ownership)
    _by_subscriber: subscriber_key -> {connection_id}   (lookup only)

Every mutation touches both maps inside the same critical section, so
callers can never observe an id in one index but not the other. The
lock is a plain threading.Lock: the critical sections are a couple of
dict operations with no await and no I/O, which keeps register/unregister
linearizable whether callers are asyncio tasks or worker threads.

Dispatch never holds the lock while sending. It asks for a snapshot
(`connections()` / `connections_for()`), which copies the handles under
the lock, then enqueues outside it.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

import structlog

from streamhub.hub.connection import ClientConnection
from streamhub.hub.errors import (
    HubClosedError,
    InvalidSubscriberKeyError,
    SubscriberLimitError,
)

logger = structlog.get_logger()

DEFAULT_QUEUE_CAPACITY = 100


@dataclass
class HubTotals:
    """Lifetime counters, never reset while the process runs."""
    registered: int = 0
    unregistered: int = 0
    published: int = 0
    delivered: int = 0
    dropped: int = 0


@dataclass
class HubStats:
    """Point-in-time view of the registry. Plain data, safe to serialize."""
    total_connections: int = 0
    subscriber_connections: dict[str, int] = field(default_factory=dict)
    dropped_by_connection: dict[str, int] = field(default_factory=dict)
    delivered_by_connection: dict[str, int] = field(default_factory=dict)
    totals: HubTotals = field(default_factory=HubTotals)
    closed: bool = False


class ConnectionRegistry:
    """Registry of live client connections.

    Usage:
        registry = ConnectionRegistry(default_capacity=100)
        conn = registry.register("user:42")
        ...
        registry.unregister(conn.id)
    """

    def __init__(
        self,
        default_capacity: int = DEFAULT_QUEUE_CAPACITY,
        max_connections_per_subscriber: int = 0,
    ):
        if default_capacity <= 0:
            raise ValueError(f"default_capacity must be positive, got {default_capacity}")
        self.default_capacity = default_capacity
        self.max_connections_per_subscriber = max_connections_per_subscriber
        self.totals = HubTotals()
        self._connections: dict[str, ClientConnection] = {}
        self._by_subscriber: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ─── Membership ───────────────────────────────────────

    def register(
        self, subscriber_key: str, capacity: Optional[int] = None
    ) -> ClientConnection:
        """Create a connection for `subscriber_key` and index it.

        Raises InvalidSubscriberKeyError for an empty key, ValueError for a
        non-positive capacity, SubscriberLimitError when the per-subscriber
        cap is reached and HubClosedError after shutdown().
        """
        if not isinstance(subscriber_key, str) or not subscriber_key.strip():
            raise InvalidSubscriberKeyError("Subscriber key must be a non-empty string")

        if capacity is None:
            capacity = self.default_capacity
        conn = ClientConnection(subscriber_key, capacity)

        with self._lock:
            if self._closed:
                raise HubClosedError("Hub is shut down")
            ids = self._by_subscriber.get(subscriber_key)
            limit = self.max_connections_per_subscriber
            if limit and ids is not None and len(ids) >= limit:
                raise SubscriberLimitError(subscriber_key, limit)
            self._connections[conn.id] = conn
            self._by_subscriber.setdefault(subscriber_key, set()).add(conn.id)
            self.totals.registered += 1
            total = len(self._connections)

        logger.info(
            "hub.connection_registered",
            connection_id=conn.id,
            subscriber_key=subscriber_key,
            capacity=conn.capacity,
            total_connections=total,
        )
        return conn

    def unregister(self, connection_id: str) -> bool:
        """Remove a connection and close it. Safe to call any number of times.

        Returns True only for the call that actually removed it.
        """
        with self._lock:
            conn = self._connections.pop(connection_id, None)
            if conn is None:
                return False
            ids = self._by_subscriber.get(conn.subscriber_key)
            if ids is not None:
                ids.discard(connection_id)
                if not ids:
                    del self._by_subscriber[conn.subscriber_key]
            conn.close()
            self.totals.unregistered += 1
            total = len(self._connections)

        logger.info(
            "hub.connection_unregistered",
            connection_id=connection_id,
            subscriber_key=conn.subscriber_key,
            delivered=conn.delivered,
            dropped=conn.dropped,
            total_connections=total,
        )
        return True

    def shutdown(self) -> int:
        """Cancel and remove every connection. Returns how many were closed.

        After this, register() raises HubClosedError and snapshots are
        empty, so every dispatch becomes a no-op.
        """
        with self._lock:
            self._closed = True
            conns = list(self._connections.values())
            self._connections.clear()
            self._by_subscriber.clear()
            for conn in conns:
                conn.close()
            self.totals.unregistered += len(conns)

        logger.info("hub.shutdown", closed_connections=len(conns))
        return len(conns)

    # ─── Snapshots (dispatch) ─────────────────────────────

    def get(self, connection_id: str) -> Optional[ClientConnection]:
        with self._lock:
            return self._connections.get(connection_id)

    def connections(self) -> list[ClientConnection]:
        """Copy of every live connection handle."""
        with self._lock:
            return list(self._connections.values())

    def connections_for(self, subscriber_key: str) -> list[ClientConnection]:
        """Copy of the handles registered under `subscriber_key`."""
        with self._lock:
            ids = self._by_subscriber.get(subscriber_key)
            if not ids:
                return []
            return [self._connections[cid] for cid in ids]

    # ─── Stats ────────────────────────────────────────────

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def subscriber_count(self, subscriber_key: str) -> int:
        with self._lock:
            return len(self._by_subscriber.get(subscriber_key, ()))

    def record_dispatch(self, delivered: int, dropped: int) -> None:
        """Fold one dispatch call's outcome into the lifetime totals."""
        with self._lock:
            self.totals.published += 1
            self.totals.delivered += delivered
            self.totals.dropped += dropped

    def stats(self) -> HubStats:
        """Read-only snapshot of counts and per-connection counters."""
        with self._lock:
            return HubStats(
                total_connections=len(self._connections),
                subscriber_connections={
                    key: len(ids) for key, ids in self._by_subscriber.items()
                },
                dropped_by_connection={
                    cid: conn.dropped for cid, conn in self._connections.items()
                },
                delivered_by_connection={
                    cid: conn.delivered for cid, conn in self._connections.items()
                },
                totals=HubTotals(**vars(self.totals)),
                closed=self._closed,
            )

    def check_consistency(self) -> None:
        """Raise AssertionError unless both indices agree.

        A failure here is a bug in the registry.
        """
        with self._lock:
            indexed = set()
            for key, ids in self._by_subscriber.items():
                if not ids:
                    raise AssertionError(f"empty id set left behind for {key!r}")
                for cid in ids:
                    conn = self._connections.get(cid)
                    if conn is None:
                        raise AssertionError(f"{cid} indexed under {key!r} but not registered")
                    if conn.subscriber_key != key:
                        raise AssertionError(f"{cid} indexed under wrong key {key!r}")
                    indexed.add(cid)
            if indexed != set(self._connections):
                raise AssertionError("registered ids missing from subscriber index")
