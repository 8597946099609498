"""Device API routes — inventory and assignment of tracking devices.

Learn: The fixed paths (/devices/unassigned, /devices/type/...) are
declared before /devices/{device_id} so they are matched first.
"""

from fastapi import APIRouter, Depends, HTTPException

from trackpro.api.deps import get_store
from trackpro.schemas.device import Device, DeviceCreate, DeviceUpdate
from trackpro.storage.memory import MemoryStore

router = APIRouter()


@router.get("/devices", response_model=list[Device])
async def list_devices(store: MemoryStore = Depends(get_store)):
    return await store.get_devices()


@router.get("/devices/unassigned", response_model=list[Device])
async def list_unassigned_devices(store: MemoryStore = Depends(get_store)):
    return await store.get_unassigned_devices()


@router.get("/devices/type/{device_type}", response_model=list[Device])
async def list_devices_by_type(device_type: str, store: MemoryStore = Depends(get_store)):
    return await store.get_devices_by_type(device_type)


@router.get("/devices/{device_id}", response_model=Device)
async def get_device(device_id: int, store: MemoryStore = Depends(get_store)):
    device = await store.get_device(device_id)
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device


@router.post("/devices", response_model=Device, status_code=201)
async def create_device(body: DeviceCreate, store: MemoryStore = Depends(get_store)):
    return await store.create_device(body)


@router.put("/devices/{device_id}", response_model=Device)
async def update_device(
    device_id: int,
    body: DeviceUpdate,
    store: MemoryStore = Depends(get_store),
):
    device = await store.update_device(
        device_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device


@router.post("/devices/{device_id}/assign/{participant_id}", response_model=Device)
async def assign_device(
    device_id: int,
    participant_id: int,
    store: MemoryStore = Depends(get_store),
):
    """Hand a device to a participant (their previous device is released)."""
    device = await store.assign_device_to_participant(device_id, participant_id)
    if not device:
        raise HTTPException(status_code=404, detail="Device or participant not found")
    return device


@router.post("/devices/{device_id}/unassign", response_model=Device)
async def unassign_device(device_id: int, store: MemoryStore = Depends(get_store)):
    device = await store.unassign_device(device_id)
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device
