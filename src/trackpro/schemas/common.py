"""Shared schema base and geometry types.

Learn: Python code uses snake_case attributes; the wire (REST bodies and
live messages) uses camelCase, matching what the dashboard frontend sends.
The alias generator bridges the two, and populate_by_name lets Python
callers construct models with either spelling.
"""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class GeoPoint(CamelModel):
    """A WGS84 position in decimal degrees."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PointGeometry(CamelModel):
    """GeoJSON Point — coordinates are [lng, lat]."""
    type: Literal["Point"] = "Point"
    coordinates: list[float] = Field(..., min_length=2, max_length=3)


class LineStringGeometry(CamelModel):
    """GeoJSON LineString — a list of [lng, lat] pairs."""
    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]] = Field(..., min_length=2)
