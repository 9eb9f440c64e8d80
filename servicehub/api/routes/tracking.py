"""Booking check-in/check-out and tracking ping endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from servicehub.core.errors import (
    DuplicateCheckInError,
    InvalidTrackingStateError,
    PersistenceError,
    PositionError,
    PositionPermissionDeniedError,
    TrackingNotFoundError,
)
from servicehub.db.gateway import SqlTrackingGateway
from servicehub.db.session import get_session
from servicehub.schemas.tracking import (
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    ErrorResponse,
    PingRequest,
    PingResponse,
    PositionReport,
    TrackingResponse,
)
from servicehub.services.position import Position, ReportedPositionSource
from servicehub.services.tracking import BookingLocation, TrackingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["tracking"])

PERMISSION_DENIED_DETAIL = "Permesso di geolocalizzazione negato. Abilita il GPS."


def get_tracking_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TrackingService:
    return TrackingService(SqlTrackingGateway(session))


def _position_source(report: PositionReport) -> ReportedPositionSource:
    if report.geolocation_error is not None:
        return ReportedPositionSource(
            error_code=report.geolocation_error.code,
            error_message=report.geolocation_error.message,
        )
    if report.position is None:
        return ReportedPositionSource()
    return ReportedPositionSource(
        position=Position(
            latitude=report.position.lat,
            longitude=report.position.lon,
            accuracy=report.position.accuracy,
            timestamp=report.position.timestamp,
        )
    )


def _position_http_error(e: PositionError, action: str) -> HTTPException:
    if isinstance(e, PositionPermissionDeniedError):
        logger.warning(f"{action} aborted: location permission denied")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=PERMISSION_DENIED_DETAIL,
        )
    logger.warning(f"{action} aborted: {type(e).__name__}: {e}")
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Errore durante il {action}: {e}",
    )


def _unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service temporarily unavailable",
    )


@router.post(
    "/bookings/{booking_id}/check-in",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Location permission denied"},
        409: {"model": ErrorResponse, "description": "Booking already checked in"},
        422: {"model": ErrorResponse, "description": "Position unavailable"},
        503: {"model": ErrorResponse, "description": "Service temporarily unavailable"},
    },
)
async def check_in(
    booking_id: str,
    request: CheckInRequest,
    service: Annotated[TrackingService, Depends(get_tracking_service)],
) -> CheckInResponse:
    """
    Start a visit.

    Being outside the 500m radius is not an error: the check-in is stored
    and the response message carries the warning.
    """
    try:
        outcome = await service.check_in(
            booking_id=booking_id,
            professional_id=request.professional_id,
            target=BookingLocation(request.booking_lat, request.booking_lon),
            source=_position_source(request),
        )
    except PositionError as e:
        raise _position_http_error(e, "check-in")
    except DuplicateCheckInError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError:
        raise _unavailable()

    return CheckInResponse(
        tracking=TrackingResponse.model_validate(outcome.record),
        distance_m=outcome.distance_m,
        in_range=outcome.in_range,
        message=outcome.message,
    )


@router.post(
    "/tracking/{tracking_id}/check-out",
    response_model=CheckOutResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Location permission denied"},
        404: {"model": ErrorResponse, "description": "Tracking not found"},
        409: {"model": ErrorResponse, "description": "Visit already completed"},
        422: {"model": ErrorResponse, "description": "Position unavailable"},
        503: {"model": ErrorResponse, "description": "Service temporarily unavailable"},
    },
)
async def check_out(
    tracking_id: str,
    request: CheckOutRequest,
    service: Annotated[TrackingService, Depends(get_tracking_service)],
) -> CheckOutResponse:
    """End a visit and record the worked hours."""
    try:
        outcome = await service.check_out(
            tracking_id=tracking_id,
            target=BookingLocation(request.booking_lat, request.booking_lon),
            source=_position_source(request),
            check_in_at=request.check_in_at,
            auto=request.auto,
        )
    except TrackingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTrackingStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PositionError as e:
        raise _position_http_error(e, "check-out")
    except PersistenceError:
        raise _unavailable()

    return CheckOutResponse(
        tracking=TrackingResponse.model_validate(outcome.record),
        actual_hours=outcome.actual_hours,
        distance_m=outcome.distance_m,
        in_range=outcome.in_range,
        message=outcome.message,
    )


@router.post(
    "/bookings/{booking_id}/pings",
    response_model=PingResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Booking already checked in"},
        503: {"model": ErrorResponse, "description": "Service temporarily unavailable"},
    },
)
async def record_ping(
    booking_id: str,
    request: PingRequest,
    service: Annotated[TrackingService, Depends(get_tracking_service)],
) -> PingResponse:
    """
    Periodic position sample from the professional's device.

    Entering the zone before a manual check-in checks in automatically.
    """
    try:
        outcome = await service.record_ping(
            booking_id=booking_id,
            professional_id=request.professional_id,
            target=BookingLocation(request.booking_lat, request.booking_lon),
            position=Position(
                latitude=request.position.lat,
                longitude=request.position.lon,
                accuracy=request.position.accuracy,
                timestamp=request.position.timestamp,
            ),
        )
    except DuplicateCheckInError as e:
        # Concurrent check-in won the race
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError:
        raise _unavailable()

    return PingResponse(
        status=outcome.status,
        distance_m=outcome.distance_m,
        in_range=outcome.in_range,
        tracking=(
            TrackingResponse.model_validate(outcome.record) if outcome.record else None
        ),
        message=outcome.message,
    )


@router.get(
    "/bookings/{booking_id}/tracking",
    response_model=TrackingResponse,
    responses={404: {"model": ErrorResponse, "description": "Tracking not found"}},
)
async def get_tracking(
    booking_id: str,
    service: Annotated[TrackingService, Depends(get_tracking_service)],
) -> TrackingResponse:
    """Tracking record of a booking."""
    record = await service.get_tracking(booking_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tracking not found",
        )
    return TrackingResponse.model_validate(record)


@router.get("/tracking", response_model=list[TrackingResponse])
async def list_tracking(
    service: Annotated[TrackingService, Depends(get_tracking_service)],
    booking_id: Annotated[list[str], Query()] = [],
) -> list[TrackingResponse]:
    """Tracking records for several bookings (e.g. a professional's agenda)."""
    records = await service.list_tracking(booking_id)
    return [TrackingResponse.model_validate(r) for r in records]
