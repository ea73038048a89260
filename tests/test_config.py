"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from streamhub.config import Settings
from streamhub.hub import EventHub


def test_defaults():
    s = Settings()
    assert s.queue_capacity == 100
    assert s.heartbeat_interval_seconds == 30.0
    assert s.max_connections_per_subscriber == 0


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("STREAMHUB_QUEUE_CAPACITY", "16")
    monkeypatch.setenv("STREAMHUB_HEARTBEAT_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("STREAMHUB_MAX_CONNECTIONS_PER_SUBSCRIBER", "3")
    s = Settings()

    hub = EventHub.from_settings(s)
    assert hub.registry.default_capacity == 16
    assert hub.keepalive.interval == 5.0
    assert hub.registry.max_connections_per_subscriber == 3


@pytest.mark.parametrize(
    "field, value",
    [
        ("queue_capacity", 0),
        ("heartbeat_interval_seconds", 0),
        ("max_connections_per_subscriber", -1),
    ],
)
def test_invalid_hub_values(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_production_requires_secret():
    with pytest.raises(ValidationError):
        Settings(environment="production")
    Settings(environment="production", jwt_secret="a-real-secret")
