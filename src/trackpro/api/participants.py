"""Participant API routes.

Learn: Registering a participant or changing their status (active,
finished, withdrawn, ...) pushes a `participant_status` live message,
so dashboards refetch the participant list for the event.
"""

from fastapi import APIRouter, Depends, HTTPException

from trackpro.api.deps import get_hub, get_store
from trackpro.realtime.hub import BroadcastHub
from trackpro.schemas.device import Device
from trackpro.schemas.messages import ParticipantStatusMessage
from trackpro.schemas.participant import (
    Participant,
    ParticipantCreate,
    ParticipantStatus,
    ParticipantUpdate,
    ParticipantWithTracking,
)
from trackpro.storage.memory import MemoryStore

router = APIRouter()


def _status_message(participant: Participant) -> ParticipantStatusMessage:
    return ParticipantStatusMessage(
        data=ParticipantStatus(
            participant_id=participant.id,
            event_id=participant.event_id,
            status=participant.status,
        )
    )


@router.get("/events/{event_id}/participants", response_model=list[Participant])
async def list_participants(event_id: int, store: MemoryStore = Depends(get_store)):
    return await store.get_participants(event_id)


@router.get(
    "/events/{event_id}/participants/tracking",
    response_model=list[ParticipantWithTracking],
)
async def list_participants_with_tracking(
    event_id: int,
    store: MemoryStore = Depends(get_store),
):
    """Participants with latest position, distance, duration and checkpoints."""
    return await store.get_participants_with_tracking(event_id)


@router.get("/participants/{participant_id}", response_model=Participant)
async def get_participant(participant_id: int, store: MemoryStore = Depends(get_store)):
    participant = await store.get_participant(participant_id)
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant


@router.post("/participants", response_model=Participant, status_code=201)
async def create_participant(
    body: ParticipantCreate,
    store: MemoryStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    participant = await store.create_participant(body)
    hub.broadcast(_status_message(participant))
    return participant


@router.put("/participants/{participant_id}", response_model=Participant)
async def update_participant(
    participant_id: int,
    body: ParticipantUpdate,
    store: MemoryStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    before = await store.get_participant(participant_id)
    if not before:
        raise HTTPException(status_code=404, detail="Participant not found")

    participant = await store.update_participant(
        participant_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    if participant.status != before.status:
        hub.broadcast(_status_message(participant))
    return participant


@router.get("/participants/{participant_id}/device", response_model=Device)
async def get_participant_device(participant_id: int, store: MemoryStore = Depends(get_store)):
    device = await store.get_device_by_participant(participant_id)
    if not device:
        raise HTTPException(status_code=404, detail="No device assigned to this participant")
    return device
