"""Pydantic schemas for participants."""

from typing import Optional

from pydantic import Field

from trackpro.schemas.common import CamelModel
from trackpro.schemas.tracking import TrackingPoint

PARTICIPANT_STATUS_PATTERN = r"^(registered|active|finished|withdrawn|disqualified)$"


class ParticipantCreate(CamelModel):
    number: int = Field(..., ge=0)  # bib number
    name: str = Field(..., min_length=1, max_length=200)
    event_id: int
    status: str = Field(default="registered", pattern=PARTICIPANT_STATUS_PATTERN)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None


class ParticipantUpdate(CamelModel):
    """Partial update — only fields present in the request are applied."""
    number: Optional[int] = Field(None, ge=0)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    event_id: Optional[int] = None
    status: Optional[str] = Field(None, pattern=PARTICIPANT_STATUS_PATTERN)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None


class Participant(ParticipantCreate):
    id: int


class ParticipantWithTracking(Participant):
    """Participant plus figures derived from their tracking history."""
    latest_position: Optional[TrackingPoint] = None
    distance: float = 0.0  # km travelled
    duration: str = "00:00:00"  # first point → latest point
    checkpoints_completed: int = 0


class ParticipantStatus(CamelModel):
    """Payload of the participant_status live message."""
    participant_id: int
    event_id: int
    status: str
