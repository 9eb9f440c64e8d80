"""Check-in/check-out orchestration service."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from servicehub.config import get_settings
from servicehub.core.errors import (
    DuplicateCheckInError,
    InvalidTrackingStateError,
    TrackingNotFoundError,
)
from servicehub.core.tracking import (
    GeofenceResult,
    TrackingStatus,
    auto_check_in_message,
    auto_check_out_message,
    check_in_message,
    check_out_message,
    compute_actual_hours,
    evaluate,
    left_zone_message,
    minutes_between,
    returned_to_zone_message,
)
from servicehub.db.gateway import TrackingGateway
from servicehub.db.models import BookingTracking, TrackingPing
from servicehub.services.position import (
    Position,
    PositionOptions,
    PositionSource,
    acquire_position,
)

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class BookingLocation:
    """Service address coordinates of a booking (None when not geocoded)."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class CheckInOutcome:
    record: BookingTracking
    distance_m: int
    in_range: bool
    message: str


@dataclass
class CheckOutOutcome:
    record: BookingTracking
    actual_hours: float
    distance_m: int
    in_range: bool
    message: str


@dataclass
class PingOutcome:
    """
    Result of a periodic position sample.

    status is one of:
    - "checked_in": no record existed and the sample was in range
    - "recorded": sample stored against an active record
    - "ignored": no active record to attach the sample to
    """

    status: str
    distance_m: int
    in_range: bool
    record: Optional[BookingTracking] = None
    message: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrackingService:
    """
    Geofenced time tracking for booked visits.

    check_in and check_out each acquire the device position (bounded wait,
    single attempt) and then perform one write. If the position cannot be
    acquired nothing is written. Being out of range never fails an
    operation; it only changes the feedback message.

    A record only moves forward (checked_in -> completed). With the
    "replace" duplicate policy a second check-in does not reopen the old
    record: it is deleted and a new one with a fresh id takes its place.
    """

    def __init__(
        self,
        gateway: TrackingGateway,
        *,
        max_range_m: Optional[int] = None,
        on_duplicate_check_in: Optional[str] = None,
        position_options: Optional[PositionOptions] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._max_range_m = (
            max_range_m if max_range_m is not None else settings.max_range_meters
        )
        self._on_duplicate = on_duplicate_check_in or settings.on_duplicate_check_in
        self._position_options = position_options or PositionOptions.from_settings()
        self._clock = clock

    def _evaluate(self, position: Position, target: BookingLocation) -> GeofenceResult:
        return evaluate(
            position.latitude,
            position.longitude,
            target.latitude,
            target.longitude,
            max_range_m=self._max_range_m,
        )

    async def check_in(
        self,
        booking_id: str,
        professional_id: str,
        target: BookingLocation,
        source: PositionSource,
    ) -> CheckInOutcome:
        """
        Start a visit.

        Raises:
            PositionError: position could not be acquired (nothing written)
            DuplicateCheckInError: a record exists and the policy is "reject"
            PersistenceError: the write failed
        """
        position = await acquire_position(source, self._position_options)
        result = self._evaluate(position, target)
        now = self._clock()

        existing = await self._gateway.get_by_booking(booking_id)
        if existing is not None and self._on_duplicate == "reject":
            logger.warning(f"Check-in rejected: booking={booking_id} already tracked")
            raise DuplicateCheckInError(f"Tracking already exists for booking {booking_id}")

        record = BookingTracking(
            booking_id=booking_id,
            professional_id=professional_id,
        )
        _start_visit(record, position, result, now)

        if existing is not None:
            record = await self._gateway.replace(existing, record)
            logger.info(
                f"Check-in replaced: booking={booking_id}, "
                f"old={existing.id}, tracking={record.id}"
            )
        else:
            record = await self._gateway.create(record)

        logger.info(
            f"Check-in: booking={booking_id}, tracking={record.id}, "
            f"distance_m={result.distance_m}, in_range={result.in_range}"
        )
        return CheckInOutcome(
            record=record,
            distance_m=result.distance_m,
            in_range=result.in_range,
            message=check_in_message(result, self._max_range_m),
        )

    async def check_out(
        self,
        tracking_id: str,
        target: BookingLocation,
        source: PositionSource,
        check_in_at: Optional[datetime] = None,
        auto: bool = False,
    ) -> CheckOutOutcome:
        """
        End a visit and compute the worked hours.

        check_in_at defaults to the stored check-in time. auto marks a
        check-out made by the app when tracking stops rather than by the user.

        Raises:
            TrackingNotFoundError: unknown tracking_id
            InvalidTrackingStateError: the visit is already completed
            PositionError: position could not be acquired (nothing written)
            PersistenceError: the write failed
        """
        record = await self._gateway.get(tracking_id)
        if record is None:
            raise TrackingNotFoundError(f"Tracking {tracking_id} not found")
        if record.status != TrackingStatus.CHECKED_IN.value:
            raise InvalidTrackingStateError(
                f"Tracking {tracking_id} is {record.status}, cannot check out"
            )

        position = await acquire_position(source, self._position_options)
        result = self._evaluate(position, target)
        now = self._clock()

        started_at = check_in_at or record.check_in_at
        actual_hours = compute_actual_hours(started_at, now)

        if record.out_of_range_since is not None:
            record.total_out_of_range_minutes += minutes_between(
                record.out_of_range_since, now
            )
            record.out_of_range_since = None

        record.check_out_at = now
        record.check_out_latitude = position.latitude
        record.check_out_longitude = position.longitude
        record.check_out_distance_m = result.distance_m
        record.check_out_in_range = result.in_range
        record.actual_hours = actual_hours
        record.auto_checked_out = auto
        record.status = TrackingStatus.COMPLETED.value

        record = await self._gateway.update(record)

        logger.info(
            f"Check-out: tracking={record.id}, hours={actual_hours}, auto={auto}, "
            f"distance_m={result.distance_m}, in_range={result.in_range}"
        )
        return CheckOutOutcome(
            record=record,
            actual_hours=actual_hours,
            distance_m=result.distance_m,
            in_range=result.in_range,
            message=(
                auto_check_out_message(actual_hours) if auto else check_out_message(actual_hours)
            ),
        )

    async def record_ping(
        self,
        booking_id: str,
        professional_id: str,
        target: BookingLocation,
        position: Position,
    ) -> PingOutcome:
        """
        Process a periodic position sample for a booking.

        Entering the zone without a record performs an automatic check-in.
        While checked in, each sample is stored and zone exits/returns are
        counted. Completed visits ignore further samples.
        """
        result = self._evaluate(position, target)
        now = self._clock()
        record = await self._gateway.get_by_booking(booking_id)

        if record is None:
            if not result.in_range:
                return PingOutcome(
                    status="ignored",
                    distance_m=result.distance_m,
                    in_range=False,
                )

            record = BookingTracking(
                booking_id=booking_id,
                professional_id=professional_id,
            )
            _start_visit(record, position, result, now)
            record.auto_checked_in = True
            record = await self._gateway.create(
                record, _ping_for(record, position, result, now)
            )
            logger.info(f"Auto check-in: booking={booking_id}, tracking={record.id}")
            return PingOutcome(
                status="checked_in",
                distance_m=result.distance_m,
                in_range=True,
                record=record,
                message=auto_check_in_message(),
            )

        if record.status != TrackingStatus.CHECKED_IN.value:
            return PingOutcome(
                status="ignored",
                distance_m=result.distance_m,
                in_range=result.in_range,
                record=record,
            )

        message = None
        if not result.in_range and record.last_in_range is not False:
            record.left_zone_count += 1
            record.out_of_range_since = now
            message = left_zone_message(result.distance_m)
            logger.info(
                f"Left zone: tracking={record.id}, count={record.left_zone_count}"
            )
        elif result.in_range and record.last_in_range is False:
            if record.out_of_range_since is not None:
                record.total_out_of_range_minutes += minutes_between(
                    record.out_of_range_since, now
                )
                record.out_of_range_since = None
            message = returned_to_zone_message()
            logger.info(f"Returned to zone: tracking={record.id}")

        record.last_in_range = result.in_range
        record.last_ping_at = now

        record = await self._gateway.update(
            record, _ping_for(record, position, result, now)
        )
        return PingOutcome(
            status="recorded",
            distance_m=result.distance_m,
            in_range=result.in_range,
            record=record,
            message=message,
        )

    async def get_tracking(self, booking_id: str) -> Optional[BookingTracking]:
        return await self._gateway.get_by_booking(booking_id)

    async def list_tracking(self, booking_ids: list[str]) -> list[BookingTracking]:
        return await self._gateway.list_by_bookings(booking_ids)


def _start_visit(
    record: BookingTracking,
    position: Position,
    result: GeofenceResult,
    now: datetime,
) -> None:
    """Fill the check-in sub-record of a new record."""
    record.status = TrackingStatus.CHECKED_IN.value

    record.check_in_at = now
    record.check_in_latitude = position.latitude
    record.check_in_longitude = position.longitude
    record.check_in_distance_m = result.distance_m
    record.check_in_in_range = result.in_range

    record.last_ping_at = now
    record.last_in_range = result.in_range
    # Time spent outside the zone counts from check-in when starting out of range
    record.out_of_range_since = None if result.in_range else now


def _ping_for(
    record: BookingTracking,
    position: Position,
    result: GeofenceResult,
    now: datetime,
) -> TrackingPing:
    return TrackingPing(
        tracking_id=record.id,
        booking_id=record.booking_id,
        professional_id=record.professional_id,
        latitude=position.latitude,
        longitude=position.longitude,
        distance_m=result.distance_m,
        in_range=result.in_range,
        recorded_at=now,
    )
