"""SQLModel database models for booking tracking and chat."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingTracking(SQLModel, table=True):
    """
    Check-in/check-out record for a booked visit.

    One record per booking (unique booking_id). Created at check-in with
    status=checked_in, updated once at check-out to status=completed.
    """

    __tablename__ = "booking_tracking"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    booking_id: str = Field(index=True, unique=True)
    professional_id: str = Field(index=True)
    status: str = Field(default="checked_in", index=True)

    # Check-in sub-record
    check_in_at: Optional[datetime] = Field(default=None)
    check_in_latitude: Optional[float] = Field(default=None)
    check_in_longitude: Optional[float] = Field(default=None)
    check_in_distance_m: Optional[int] = Field(default=None)
    check_in_in_range: Optional[bool] = Field(default=None)

    # Check-out sub-record (absent until check-out)
    check_out_at: Optional[datetime] = Field(default=None)
    check_out_latitude: Optional[float] = Field(default=None)
    check_out_longitude: Optional[float] = Field(default=None)
    check_out_distance_m: Optional[int] = Field(default=None)
    check_out_in_range: Optional[bool] = Field(default=None)

    actual_hours: Optional[float] = Field(default=None)

    # Automatic tracking while the visit is in progress
    auto_checked_in: bool = Field(default=False)
    auto_checked_out: bool = Field(default=False)
    last_ping_at: Optional[datetime] = Field(default=None)
    last_in_range: Optional[bool] = Field(default=None)
    out_of_range_since: Optional[datetime] = Field(default=None)
    left_zone_count: int = Field(default=0)
    total_out_of_range_minutes: float = Field(default=0.0)

    created_at: datetime = Field(default_factory=_utcnow)

    # Relationships
    pings: list["TrackingPing"] = Relationship(back_populates="tracking")


class TrackingPing(SQLModel, table=True):
    """Position sample recorded while a visit is in progress."""

    __tablename__ = "tracking_pings"

    id: Optional[int] = Field(default=None, primary_key=True)
    tracking_id: str = Field(foreign_key="booking_tracking.id", index=True)
    booking_id: str = Field(index=True)
    professional_id: str
    latitude: float
    longitude: float
    distance_m: int
    in_range: bool
    recorded_at: datetime = Field(default_factory=_utcnow, index=True)

    # Relationships
    tracking: Optional[BookingTracking] = Relationship(back_populates="pings")


class ChatMessage(SQLModel, table=True):
    """
    Chat message stored after content filtering.

    content always holds the sanitized text. original_content is kept only
    for blocked messages, for moderation audits.
    """

    __tablename__ = "messages"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    conversation_id: str = Field(index=True)
    sender_id: str = Field(index=True)
    sender_type: str
    content: str
    is_blocked: bool = Field(default=False, index=True)
    original_content: Optional[str] = Field(default=None)
    blocked_reasons: str = Field(default="")  # comma-separated tags
    message_type: str = Field(default="text")
    file_url: Optional[str] = Field(default=None)
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utcnow, index=True)
