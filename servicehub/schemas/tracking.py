"""Pydantic schemas for check-in/check-out and tracking pings."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DevicePosition(BaseModel):
    """GPS fix reported by the professional's device."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")
    accuracy: Optional[float] = Field(
        default=None, ge=0, description="GPS accuracy in meters"
    )
    timestamp: Optional[datetime] = Field(default=None, description="Fix time")


class GeolocationErrorReport(BaseModel):
    """Geolocation failure reported by the device (W3C error codes)."""

    code: int = Field(
        ..., ge=1, le=3, description="1 permission denied, 2 unavailable, 3 timeout"
    )
    message: str = Field(default="", description="Browser/OS error message")


class PositionReport(BaseModel):
    """Either a fix or the error the device got while acquiring one."""

    booking_lat: Optional[float] = Field(
        default=None, ge=-90, le=90, description="Booking address latitude"
    )
    booking_lon: Optional[float] = Field(
        default=None, ge=-180, le=180, description="Booking address longitude"
    )
    position: Optional[DevicePosition] = None
    geolocation_error: Optional[GeolocationErrorReport] = None

    @model_validator(mode="after")
    def check_position_or_error(self) -> "PositionReport":
        """A report carries a position or an error, never both."""
        if self.position is not None and self.geolocation_error is not None:
            raise ValueError("Send either position or geolocation_error, not both")
        return self


class CheckInRequest(PositionReport):
    professional_id: str = Field(..., min_length=1, description="Professional identifier")


class CheckOutRequest(PositionReport):
    check_in_at: Optional[datetime] = Field(
        default=None, description="Check-in time, defaults to the stored one"
    )
    auto: bool = Field(
        default=False, description="Check-out triggered by the app when tracking stops"
    )


class PingRequest(BaseModel):
    """Periodic position sample while a visit is in progress."""

    professional_id: str = Field(..., min_length=1)
    booking_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    booking_lon: Optional[float] = Field(default=None, ge=-180, le=180)
    position: DevicePosition


class TrackingResponse(BaseModel):
    """Stored tracking record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_id: str
    professional_id: str
    status: str
    check_in_at: Optional[datetime] = None
    check_in_latitude: Optional[float] = None
    check_in_longitude: Optional[float] = None
    check_in_distance_m: Optional[int] = None
    check_in_in_range: Optional[bool] = None
    check_out_at: Optional[datetime] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_out_distance_m: Optional[int] = None
    check_out_in_range: Optional[bool] = None
    actual_hours: Optional[float] = None
    auto_checked_in: bool = False
    auto_checked_out: bool = False
    last_ping_at: Optional[datetime] = None
    left_zone_count: int = 0
    total_out_of_range_minutes: float = 0.0


class CheckInResponse(BaseModel):
    tracking: TrackingResponse
    distance_m: int
    in_range: bool
    message: str


class CheckOutResponse(BaseModel):
    tracking: TrackingResponse
    actual_hours: float
    distance_m: int
    in_range: bool
    message: str


class PingResponse(BaseModel):
    status: str = Field(..., description="'checked_in', 'recorded' or 'ignored'")
    distance_m: int
    in_range: bool
    tracking: Optional[TrackingResponse] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    detail: str
