"""Pydantic schemas for events.

Learn: Separate schemas for create/update/read keeps the API clean.
- EventCreate: what you POST
- EventUpdate: what you PUT — every field optional, only set fields apply
- Event: what the API returns
- EventWithStats: Event plus live figures computed from tracking history
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from trackpro.schemas.common import CamelModel
from trackpro.schemas.participant import ParticipantWithTracking

EVENT_STATUS_PATTERN = r"^(upcoming|active|completed|cancelled)$"


class EventCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: str = Field(..., min_length=1)
    status: str = Field(default="upcoming", pattern=EVENT_STATUS_PATTERN)
    route_id: Optional[int] = None
    created_by: Optional[int] = None
    max_participants: int = Field(default=100, ge=1)


class EventUpdate(CamelModel):
    """Partial update — only fields present in the request are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = Field(None, pattern=EVENT_STATUS_PATTERN)
    route_id: Optional[int] = None
    created_by: Optional[int] = None
    max_participants: Optional[int] = Field(None, ge=1)


class Event(EventCreate):
    id: int


class EventWithStats(Event):
    participant_count: int
    active_participants: int
    alerts_count: int
    completed_checkpoints: int
    total_checkpoints: int
    lead_participant: Optional[ParticipantWithTracking] = None
