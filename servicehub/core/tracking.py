"""
Geofence evaluation for booking check-in/check-out.

Pure calculations only: distance to the booking address, in-range
determination and worked-time math. Persistence and position acquisition
live in servicehub.services.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from servicehub.core.geo import haversine_distance


# Acceptable distance from the booking address
MAX_RANGE_METERS = 500


class TrackingStatus(str, Enum):
    """Lifecycle of a tracking record: checked_in -> completed, never back."""

    CHECKED_IN = "checked_in"
    COMPLETED = "completed"


@dataclass
class GeofenceResult:
    """Outcome of comparing the device position with the booking address."""

    distance_m: int
    in_range: bool


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def evaluate(
    current_lat: float,
    current_lon: float,
    target_lat: Optional[float],
    target_lon: Optional[float],
    max_range_m: int = MAX_RANGE_METERS,
) -> GeofenceResult:
    """
    Measure how far the professional is from the booking address.

    A booking without stored coordinates cannot be checked, so the
    professional is never penalized for it: distance 0, in range.

    Args:
        current_lat: Device latitude
        current_lon: Device longitude
        target_lat: Booking latitude (None if unknown)
        target_lon: Booking longitude (None if unknown)
        max_range_m: Geofence radius in meters

    Returns:
        GeofenceResult with the distance rounded to whole meters
    """
    if target_lat is None or target_lon is None:
        return GeofenceResult(distance_m=0, in_range=True)

    distance = haversine_distance(current_lat, current_lon, target_lat, target_lon)
    distance_m = int(_round_half_up(distance))

    return GeofenceResult(distance_m=distance_m, in_range=distance_m <= max_range_m)


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def compute_actual_hours(check_in_at: datetime, check_out_at: datetime) -> float:
    """Worked hours between check-in and check-out, rounded to 2 decimals."""
    elapsed = ensure_utc(check_out_at) - ensure_utc(check_in_at)
    return _round_half_up(elapsed.total_seconds() / 3600, 2)


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes between two timestamps (never negative)."""
    elapsed = ensure_utc(end) - ensure_utc(start)
    return max(0.0, elapsed.total_seconds() / 60)


def check_in_message(result: GeofenceResult, max_range_m: int = MAX_RANGE_METERS) -> str:
    """User-facing feedback for a successful check-in."""
    if result.in_range:
        return "Check-in registrato con successo! Sei nella zona corretta."
    return (
        f"Check-in registrato, ma risulti a {result.distance_m}m "
        f"dall'indirizzo del cliente (limite: {max_range_m}m)."
    )


def check_out_message(actual_hours: float) -> str:
    """User-facing feedback for a successful check-out."""
    return f"Check-out registrato! Ore lavorate: {actual_hours:.2f}h"


def auto_check_in_message() -> str:
    return "Check-in automatico registrato! Sei nella zona del cliente."


def auto_check_out_message(actual_hours: float) -> str:
    return f"Check-out automatico. Ore registrate: {actual_hours:.2f}h"


def left_zone_message(distance_m: int) -> str:
    return (
        f"Sei uscito dalla zona del cliente ({distance_m}m). "
        "Il sistema lo sta registrando."
    )


def returned_to_zone_message() -> str:
    return "Sei rientrato nella zona del cliente."
