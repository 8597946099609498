"""Tracking and alert API routes.

Learn: POST /tracking is the HTTP twin of a viewer's position_update
frame. Both go through BroadcastHub.ingest_position, which persists the
point before broadcasting it. A point for an unknown participant is
rejected with 422; any other persistence failure is a 500. Either way
nothing is broadcast.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from trackpro.api.deps import get_hub, get_store
from trackpro.realtime.hub import BroadcastHub
from trackpro.schemas.messages import AlertMessage
from trackpro.schemas.tracking import (
    AlertInfo,
    AlertResolved,
    ResolveResult,
    TrackingPoint,
    TrackingPointCreate,
)
from trackpro.storage.memory import MemoryStore, StoreError

router = APIRouter()


@router.get("/participants/{participant_id}/tracking", response_model=list[TrackingPoint])
async def get_tracking_history(
    participant_id: int,
    limit: int = Query(100, ge=1, le=1000),
    store: MemoryStore = Depends(get_store),
):
    """Tracking history for a participant, newest first."""
    return await store.get_tracking_points(participant_id, limit=limit)


@router.post("/tracking", response_model=TrackingPoint, status_code=201)
async def submit_tracking_point(
    body: TrackingPointCreate,
    hub: BroadcastHub = Depends(get_hub),
):
    try:
        return await hub.ingest_position(body)
    except StoreError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/events/{event_id}/alerts", response_model=list[AlertInfo])
async def list_active_alerts(event_id: int, store: MemoryStore = Depends(get_store)):
    """Open alerts for an event — one per participant."""
    return await store.get_active_alerts(event_id)


@router.post("/tracking/{point_id}/resolve-alert", response_model=ResolveResult)
async def resolve_alert(
    point_id: int,
    store: MemoryStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    """Close the alert carried by a tracking point.

    Learn: Resolving is idempotent — a second call succeeds without
    changing anything, and only the call that actually closes the alert
    broadcasts it.
    """
    point = await store.get_tracking_point(point_id)
    if not point:
        raise HTTPException(status_code=404, detail="Tracking point not found")

    was_open = point.has_alert
    await store.resolve_alert(point_id)
    if was_open:
        hub.broadcast(AlertMessage(data=AlertResolved(id=point_id)))
    return ResolveResult(success=True)
