"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
hub is accepting streams. There are no external dependencies to probe;
the hub is in-process.
"""

from fastapi import APIRouter, Depends

from streamhub import __version__
from streamhub.hub import EventHub
from streamhub.realtime import get_hub

router = APIRouter()


@router.get("/health")
async def health_check(hub: EventHub = Depends(get_hub)):
    """Check server health and report the number of open streams."""
    closed = hub.registry.closed
    return {
        "status": "degraded" if closed else "healthy",
        "server": "ok",
        "version": __version__,
        "hub": "closed" if closed else "ok",
        "connections": hub.registry.connection_count(),
    }
