"""Pydantic schemas for routes and checkpoints."""

from typing import Optional

from pydantic import Field

from trackpro.schemas.common import CamelModel, LineStringGeometry, PointGeometry


# ─── Routes ──────────────────────────────────────────────

class RouteCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    distance: float = Field(..., ge=0)  # km
    path: LineStringGeometry
    created_by: Optional[int] = None


class RouteUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    distance: Optional[float] = Field(None, ge=0)
    path: Optional[LineStringGeometry] = None
    created_by: Optional[int] = None


class Route(RouteCreate):
    id: int


# ─── Checkpoints ─────────────────────────────────────────

class CheckpointCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    route_id: int
    order: int = Field(..., ge=0)
    location: PointGeometry
    radius: float = Field(default=50.0, gt=0)  # metres


class CheckpointUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    route_id: Optional[int] = None
    order: Optional[int] = Field(None, ge=0)
    location: Optional[PointGeometry] = None
    radius: Optional[float] = Field(None, gt=0)


class Checkpoint(CheckpointCreate):
    id: int
