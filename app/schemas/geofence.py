"""
Geofence Schemas for request/response validation
"""
from typing import Optional, Any, Literal
from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    """Latitude/longitude pair in degrees"""
    lat: float
    lng: float


class LocationIn(BaseModel):
    """
    Client-reported position.

    Coordinates are left loosely typed so the verification pipeline can
    answer missing or malformed input with its own error codes.
    """
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    accuracy: Optional[float] = None


class GeofenceUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    center: GeoPoint
    radius_meters: float = Field(alias="radiusMeters")
    note: Optional[str] = Field(default=None, max_length=255)


class Geofence(BaseModel):
    """Current authorized-area snapshot"""
    center: GeoPoint
    radius_meters: float
    source: Literal["default", "persisted"]
    revision: int


class GeofenceTestRequest(BaseModel):
    location: Optional[LocationIn] = None


class GeofenceTestResponse(BaseModel):
    inside: bool
    distance: float
    geofence: Geofence
