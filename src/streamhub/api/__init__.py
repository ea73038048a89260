"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health is open; the SSE admin routes require
the admin scope. The stream endpoint itself lives in
streamhub.realtime.sse and does its own auth.
"""

from fastapi import APIRouter, Depends

from streamhub.api.health import router as health_router
from streamhub.api.sse_admin import router as sse_admin_router
from streamhub.auth.dependencies import require_admin

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])

# Admin routes — require a token with the admin scope
api_router.include_router(
    sse_admin_router, tags=["sse"], dependencies=[Depends(require_admin)]
)
