"""Test fixtures — one isolated hub per test.

Learn: there is no global hub, so every test builds its own EventHub
and an app wired to it. Nothing leaks between tests and no server or
external service is needed.

ASGITransport doesn't run the lifespan, so heartbeats are off unless a
test starts them itself.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from streamhub.auth.jwt import create_access_token
from streamhub.hub import EventHub
from streamhub.main import create_app


@pytest.fixture()
def hub():
    """Hub with small queues so drop behavior is easy to trigger."""
    return EventHub(queue_capacity=4, heartbeat_interval=30.0)


@pytest.fixture()
def app(hub):
    return create_app(hub=hub)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def admin_token():
    return create_access_token("ops", scopes=["admin"])


@pytest.fixture()
def user_token():
    return create_access_token("user:42")


@pytest.fixture()
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
