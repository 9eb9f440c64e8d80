"""Pydantic schemas for geocoding and geofence evaluation."""

from typing import Optional

from pydantic import BaseModel, Field


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1)


class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str
    place_id: str


class EvaluateRequest(BaseModel):
    current_lat: float = Field(..., ge=-90, le=90)
    current_lon: float = Field(..., ge=-180, le=180)
    target_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    target_lon: Optional[float] = Field(default=None, ge=-180, le=180)


class EvaluateResponse(BaseModel):
    distance_m: int
    in_range: bool
    max_range_m: int


class PositionOptionsResponse(BaseModel):
    """Options devices must use when acquiring a fix."""

    high_accuracy: bool
    timeout_ms: int
    max_staleness_ms: int
