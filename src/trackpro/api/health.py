"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
reports how many live-update viewers are connected right now.
"""

from fastapi import APIRouter, Depends

from trackpro import __version__
from trackpro.api.deps import get_hub
from trackpro.realtime.hub import BroadcastHub

router = APIRouter()


@router.get("/health")
async def health_check(hub: BroadcastHub = Depends(get_hub)):
    """Check server health and live channel occupancy."""
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "subscribers": len(hub.registry),
    }
