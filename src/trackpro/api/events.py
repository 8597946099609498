"""Event API routes.

Learn: Routes just translate HTTP to store calls and handle 404s.
Creating or editing an event also pushes an `event_update` live message
so dashboards refresh their event list, detail and stats.
"""

from fastapi import APIRouter, Depends, HTTPException

from trackpro.api.deps import get_hub, get_store
from trackpro.realtime.hub import BroadcastHub
from trackpro.schemas.event import Event, EventCreate, EventUpdate, EventWithStats
from trackpro.schemas.messages import EventUpdateMessage
from trackpro.schemas.route import Route
from trackpro.storage.memory import MemoryStore

router = APIRouter()


@router.get("/events", response_model=list[Event])
async def list_events(store: MemoryStore = Depends(get_store)):
    return await store.get_events()


@router.get("/events/{event_id}", response_model=Event)
async def get_event(event_id: int, store: MemoryStore = Depends(get_store)):
    event = await store.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/events/{event_id}/stats", response_model=EventWithStats)
async def get_event_stats(event_id: int, store: MemoryStore = Depends(get_store)):
    """Event with participant counts, open alerts and checkpoint progress."""
    stats = await store.get_event_with_stats(event_id)
    if not stats:
        raise HTTPException(status_code=404, detail="Event not found")
    return stats


@router.get("/events/{event_id}/route", response_model=list[Route])
async def get_event_routes(event_id: int, store: MemoryStore = Depends(get_store)):
    return await store.get_routes_by_event(event_id)


@router.post("/events", response_model=Event, status_code=201)
async def create_event(
    body: EventCreate,
    store: MemoryStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    event = await store.create_event(body)
    hub.broadcast(EventUpdateMessage(data=event))
    return event


@router.put("/events/{event_id}", response_model=Event)
async def update_event(
    event_id: int,
    body: EventUpdate,
    store: MemoryStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    """Partially update an event — only non-null fields in the body change."""
    event = await store.update_event(event_id, body.model_dump(exclude_unset=True, exclude_none=True))
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    hub.broadcast(EventUpdateMessage(data=event))
    return event
