"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: There is no authentication — every route is open, same as the
live-update channel. Each router owns one resource; the tags group them
in the OpenAPI docs.
"""

from fastapi import APIRouter

from trackpro.api.devices import router as devices_router
from trackpro.api.events import router as events_router
from trackpro.api.health import router as health_router
from trackpro.api.participants import router as participants_router
from trackpro.api.routes import router as routes_router
from trackpro.api.tracking import router as tracking_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(routes_router, tags=["routes", "checkpoints"])
api_router.include_router(participants_router, tags=["participants"])
api_router.include_router(tracking_router, tags=["tracking", "alerts"])
api_router.include_router(devices_router, tags=["devices"])
