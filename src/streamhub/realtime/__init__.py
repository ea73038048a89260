"""Real-time transport — Server-Sent Events on top of the hub.

Learn: Events flow one way:
1. Publishers → Dispatcher → per-connection queue (in-process, non-blocking)
2. Queue → SSE consumer → HTTP response body (one consumer per stream)

The hub lives on app.state (built in the lifespan); routes fetch it with
the get_hub dependency instead of importing a global.
"""

from fastapi import Request

from streamhub.hub import EventHub


def get_hub(request: Request) -> EventHub:
    """FastAPI dependency returning the application's hub."""
    return request.app.state.hub
