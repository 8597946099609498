"""Pydantic schemas for tracking points and alerts.

Learn: A TrackingPoint is immutable once stored, except for alert
resolution, which rewrites alert_type to "<type>-resolved" and clears
has_alert. The validator below enforces the invariant that an open alert
always carries one of the non-resolved alert types.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from trackpro.schemas.common import CamelModel, GeoPoint

ALERT_TYPES = ("sos", "low-battery", "off-course")
RESOLVED_SUFFIX = "-resolved"


def is_resolved(alert_type: Optional[str]) -> bool:
    return bool(alert_type) and alert_type.endswith(RESOLVED_SUFFIX)


# ─── Tracking points ─────────────────────────────────────

class TrackingPointCreate(CamelModel):
    """Input shape — what devices, viewers and the simulator submit (no id)."""
    participant_id: int = Field(..., ge=1)
    event_id: int = Field(..., ge=1)
    timestamp: Optional[datetime] = None  # assigned on persistence when absent
    location: GeoPoint
    speed: Optional[float] = Field(None, ge=0)  # km/h
    battery: Optional[float] = Field(None, ge=0, le=100)  # percent
    elevation: Optional[float] = None  # metres
    has_alert: bool = False
    alert_type: Optional[str] = None

    @model_validator(mode="after")
    def check_alert_state(self):
        if self.alert_type is not None:
            base = self.alert_type.removesuffix(RESOLVED_SUFFIX)
            if base not in ALERT_TYPES:
                raise ValueError(f"Unknown alert type: {self.alert_type}")
        if self.has_alert and (self.alert_type is None or is_resolved(self.alert_type)):
            raise ValueError("has_alert requires an open alert type (sos, low-battery, off-course)")
        if not self.has_alert and self.alert_type is not None and not is_resolved(self.alert_type):
            raise ValueError(f"Open alert type {self.alert_type} requires has_alert")
        return self


class TrackingPoint(TrackingPointCreate):
    """A persisted tracking point, as returned by the API and broadcast live."""
    id: int
    timestamp: datetime


# ─── Alerts ──────────────────────────────────────────────

class AlertInfo(CamelModel):
    """Derived view of an open alert joined with its participant. Never stored."""
    participant_id: int
    alert_type: str
    timestamp: datetime
    location: GeoPoint
    participant_name: str
    participant_number: int
    tracking_point_id: Optional[int] = None


class AlertResolved(CamelModel):
    """Payload broadcast when an operator resolves an alert."""
    id: int
    resolved: bool = True


class ResolveResult(CamelModel):
    success: bool
