"""Geocoding and geofence helper endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from servicehub.config import get_settings
from servicehub.core.errors import AddressNotFoundError, GeocodingError
from servicehub.core.tracking import evaluate
from servicehub.schemas.geo import (
    EvaluateRequest,
    EvaluateResponse,
    GeocodeRequest,
    GeocodeResponse,
    PositionOptionsResponse,
)
from servicehub.schemas.tracking import ErrorResponse
from servicehub.services.geocoding import geocoding_service
from servicehub.services.position import PositionOptions

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/v1/geo", tags=["geo"])


@router.post(
    "/geocode",
    response_model=GeocodeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Address not found"},
        503: {"model": ErrorResponse, "description": "Geocoding unavailable"},
    },
)
async def geocode_address(request: GeocodeRequest) -> GeocodeResponse:
    """Resolve a booking address to the coordinates used by the geofence."""
    try:
        result = await geocoding_service.geocode(request.address)
    except AddressNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found",
        )
    except GeocodingError as e:
        logger.error(f"Geocoding failed: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable",
        )

    return GeocodeResponse(
        latitude=result.latitude,
        longitude=result.longitude,
        formatted_address=result.formatted_address,
        place_id=result.place_id,
    )


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_position(request: EvaluateRequest) -> EvaluateResponse:
    """Distance to the target and whether it is inside the geofence."""
    result = evaluate(
        request.current_lat,
        request.current_lon,
        request.target_lat,
        request.target_lon,
        max_range_m=settings.max_range_meters,
    )
    return EvaluateResponse(
        distance_m=result.distance_m,
        in_range=result.in_range,
        max_range_m=settings.max_range_meters,
    )


@router.get("/position-options", response_model=PositionOptionsResponse)
async def position_options() -> PositionOptionsResponse:
    """Acquisition options clients must pass to the device geolocation API."""
    options = PositionOptions.from_settings()
    return PositionOptionsResponse(
        high_accuracy=options.high_accuracy,
        timeout_ms=options.timeout_ms,
        max_staleness_ms=options.max_staleness_ms,
    )
