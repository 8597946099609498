"""Pydantic schemas for tracking devices (GPS units, phones, watches)."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from trackpro.schemas.common import CamelModel

DEVICE_STATUS_PATTERN = r"^(available|assigned|maintenance|retired)$"


class DeviceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1)  # GPS, Smartphone, Wearable, ...
    serial_number: str = Field(..., min_length=1)
    status: str = Field(default="available", pattern=DEVICE_STATUS_PATTERN)
    battery_level: Optional[int] = Field(None, ge=0, le=100)
    last_seen: Optional[datetime] = None
    assigned_to: Optional[int] = None  # participant id


class DeviceUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, min_length=1)
    serial_number: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = Field(None, pattern=DEVICE_STATUS_PATTERN)
    battery_level: Optional[int] = Field(None, ge=0, le=100)
    last_seen: Optional[datetime] = None
    assigned_to: Optional[int] = None


class Device(DeviceCreate):
    id: int
