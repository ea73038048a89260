"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The lifespan is the composition root for the event hub: it
builds one EventHub from settings, starts heartbeats, and shuts the hub
down (every stream cancelled, no further writes) when the server stops.

Tests pass their own hub to create_app(); the lifespan then reuses it
instead of building another.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from streamhub import __version__
from streamhub.api import api_router
from streamhub.config import settings
from streamhub.hub import EventHub
from streamhub.logging_setup import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    configure_logging(settings.log_level, json_logs=settings.log_json)
    logger.info(
        "streamhub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    hub: Optional[EventHub] = getattr(app.state, "hub", None)
    if hub is None:
        hub = EventHub.from_settings(settings)
        app.state.hub = hub
    hub.start()
    logger.info(
        "streamhub.hub_started",
        queue_capacity=hub.registry.default_capacity,
        heartbeat_interval=hub.keepalive.interval,
    )

    yield

    logger.info("streamhub.shutdown")
    closed = await hub.shutdown()
    logger.info("streamhub.hub_stopped", closed_connections=closed)


def create_app(hub: Optional[EventHub] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="streamhub",
        description="Real-time event delivery hub — Server-Sent Events fan-out",
        version=__version__,
        lifespan=lifespan,
    )
    if hub is not None:
        app.state.hub = hub

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from streamhub.middleware.request_id import RequestIdMiddleware
    from streamhub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Mount API routes
    app.include_router(api_router)

    # Mount the SSE stream
    from streamhub.realtime.sse import router as sse_router
    app.include_router(sse_router, tags=["sse"])

    return app


# Default app instance (used by uvicorn: streamhub.main:app)
app = create_app()
