"""Dispatcher tests — fan-out, targeting, drop-on-full.

Learn: the property that matters most is isolation. A connection whose
queue is full loses the event and nobody else notices: not the other
subscribers and not the publisher.
"""

import pytest

from streamhub.hub import ConnectionRegistry, Dispatcher, Event


@pytest.fixture()
def registry():
    return ConnectionRegistry(default_capacity=3)


@pytest.fixture()
def dispatcher(registry):
    return Dispatcher(registry)


def _drain(conn) -> list[Event]:
    events = []
    while conn.pending():
        events.append(conn._queue.get_nowait())
    return events


PING = Event(event_type="ping")


# ═══════════════════════════════════════════════════════════
# Broadcast
# ═══════════════════════════════════════════════════════════


def test_broadcast_reaches_everyone(registry, dispatcher):
    conns = [registry.register(f"user:{i}") for i in range(5)]
    assert dispatcher.broadcast(PING) == 5
    assert all(c.pending() == 1 for c in conns)


def test_broadcast_drops_only_for_full_connection(registry, dispatcher):
    """One full queue + N-1 free ones → exactly one drop, N-1 deliveries."""
    full = registry.register("slow")
    for i in range(full.capacity):
        assert full.try_put(Event(event_type="filler", payload=i))
    others = [registry.register(f"user:{i}") for i in range(4)]

    delivered = dispatcher.broadcast(PING)

    assert delivered == 4
    assert full.dropped == 1
    assert full.pending() == full.capacity
    assert all(e.event_type == "filler" for e in _drain(full))
    for conn in others:
        assert [e.event_type for e in _drain(conn)] == ["ping"]
        assert conn.dropped == 0

    stats = registry.stats()
    assert stats.dropped_by_connection[full.id] == 1
    assert stats.totals.dropped == 1
    assert stats.totals.delivered == 4


def test_broadcast_with_no_connections_is_noop(dispatcher):
    assert dispatcher.broadcast(PING) == 0


def test_broadcast_after_shutdown_is_noop(registry, dispatcher):
    conn = registry.register("user:42")
    registry.shutdown()

    assert dispatcher.broadcast(PING) == 0
    assert dispatcher.send_to_subscriber("user:42", PING) == 0
    assert dispatcher.send_to_connection(conn.id, PING) is False
    assert conn.pending() == 0


def test_unregistered_connection_gets_nothing(registry, dispatcher):
    a = registry.register("user:1")
    b = registry.register("user:2")
    registry.unregister(a.id)

    assert dispatcher.broadcast(PING) == 1
    assert a.pending() == 0
    assert b.pending() == 1


# ═══════════════════════════════════════════════════════════
# Targeted
# ═══════════════════════════════════════════════════════════


def test_send_to_subscriber_reaches_all_its_connections(registry, dispatcher):
    a = registry.register("user:42")
    b = registry.register("user:42")
    other = registry.register("user:7")

    assert dispatcher.send_to_subscriber("user:42", PING) == 2
    assert a.pending() == 1
    assert b.pending() == 1
    assert other.pending() == 0


def test_send_to_unknown_subscriber_is_noop(registry, dispatcher):
    conn = registry.register("user:42")
    assert dispatcher.send_to_subscriber("user:999", PING) == 0
    assert conn.pending() == 0


def test_send_to_connection(registry, dispatcher):
    a = registry.register("user:42")
    b = registry.register("user:42")

    assert dispatcher.send_to_connection(a.id, PING) is True
    assert a.pending() == 1
    assert b.pending() == 0


def test_send_to_unknown_connection(dispatcher):
    assert dispatcher.send_to_connection("nope", PING) is False


def test_send_to_full_connection_drops(registry, dispatcher):
    conn = registry.register("user:42", capacity=1)
    assert dispatcher.send_to_connection(conn.id, PING) is True
    assert dispatcher.send_to_connection(conn.id, PING) is False
    assert conn.dropped == 1


def test_subscriber_scenario(registry, dispatcher):
    """A and B under one key; after A leaves only B gets the next ping."""
    a = registry.register("user:42")
    b = registry.register("user:42")

    dispatcher.send_to_subscriber("user:42", Event(event_type="ping"))
    assert [e.event_type for e in _drain(a)] == ["ping"]
    assert [e.event_type for e in _drain(b)] == ["ping"]

    registry.unregister(a.id)
    dispatcher.send_to_subscriber("user:42", Event(event_type="ping"))
    assert _drain(a) == []
    assert [e.event_type for e in _drain(b)] == ["ping"]


# ═══════════════════════════════════════════════════════════
# Notify helpers
# ═══════════════════════════════════════════════════════════


def test_notify_stamps_unique_ids(registry, dispatcher):
    conn = registry.register("user:42")
    dispatcher.notify_all("new_post", {"post_id": 1})
    dispatcher.notify_subscriber("user:42", "new_message", {"text": "hi"})

    first, second = _drain(conn)
    assert first.event_type == "new_post"
    assert second.payload == {"text": "hi"}
    assert first.id and second.id and first.id != second.id
    assert first.to_dict() == {"event": "new_post", "data": {"post_id": 1}, "id": first.id}
