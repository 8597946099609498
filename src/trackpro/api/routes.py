"""Route and checkpoint API routes."""

from fastapi import APIRouter, Depends, HTTPException, Response

from trackpro.api.deps import get_store
from trackpro.schemas.route import (
    Checkpoint,
    CheckpointCreate,
    CheckpointUpdate,
    Route,
    RouteCreate,
    RouteUpdate,
)
from trackpro.storage.memory import MemoryStore

router = APIRouter()


# ═══════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════


@router.get("/routes", response_model=list[Route])
async def list_routes(store: MemoryStore = Depends(get_store)):
    return await store.get_routes()


@router.get("/routes/{route_id}", response_model=Route)
async def get_route(route_id: int, store: MemoryStore = Depends(get_store)):
    route = await store.get_route(route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return route


@router.post("/routes", response_model=Route, status_code=201)
async def create_route(body: RouteCreate, store: MemoryStore = Depends(get_store)):
    return await store.create_route(body)


@router.put("/routes/{route_id}", response_model=Route)
async def update_route(
    route_id: int,
    body: RouteUpdate,
    store: MemoryStore = Depends(get_store),
):
    route = await store.update_route(route_id, body.model_dump(exclude_unset=True, exclude_none=True))
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return route


# ═══════════════════════════════════════════════════════════
# Checkpoints
# ═══════════════════════════════════════════════════════════


@router.get("/routes/{route_id}/checkpoints", response_model=list[Checkpoint])
async def list_checkpoints(route_id: int, store: MemoryStore = Depends(get_store)):
    """Checkpoints of a route in course order."""
    return await store.get_checkpoints(route_id)


@router.post("/checkpoints", response_model=Checkpoint, status_code=201)
async def create_checkpoint(body: CheckpointCreate, store: MemoryStore = Depends(get_store)):
    if not await store.get_route(body.route_id):
        raise HTTPException(status_code=404, detail="Route not found")
    return await store.create_checkpoint(body)


@router.put("/checkpoints/{checkpoint_id}", response_model=Checkpoint)
async def update_checkpoint(
    checkpoint_id: int,
    body: CheckpointUpdate,
    store: MemoryStore = Depends(get_store),
):
    checkpoint = await store.update_checkpoint(
        checkpoint_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    if not checkpoint:
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return checkpoint


@router.delete("/checkpoints/{checkpoint_id}", status_code=204)
async def delete_checkpoint(checkpoint_id: int, store: MemoryStore = Depends(get_store)):
    if not await store.delete_checkpoint(checkpoint_id):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return Response(status_code=204)
