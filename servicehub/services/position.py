"""
Device position acquisition.

The professional's device owns the GPS. It reports either a fix or the
geolocation error it got (W3C codes: 1 permission denied, 2 position
unavailable, 3 timeout), and the tracking service reads it through the
PositionSource protocol with a bounded wait.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from servicehub.config import get_settings
from servicehub.core.errors import (
    PositionPermissionDeniedError,
    PositionUnavailableError,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# W3C GeolocationPositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3


@dataclass(frozen=True)
class PositionOptions:
    """Acquisition options requested from the device."""

    high_accuracy: bool = True
    timeout_ms: int = 15000
    max_staleness_ms: int = 0  # 0 = no cached fix

    @classmethod
    def from_settings(cls) -> "PositionOptions":
        return cls(
            high_accuracy=settings.position_high_accuracy,
            timeout_ms=settings.position_timeout_ms,
            max_staleness_ms=settings.position_max_staleness_ms,
        )


@dataclass(frozen=True)
class Position:
    """A single GPS fix."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: Optional[datetime] = None


class PositionSource(Protocol):
    """Anything that can produce the device's current position."""

    async def get_current_position(self, options: PositionOptions) -> Position:
        ...


class ReportedPositionSource:
    """PositionSource backed by what the device sent with the request."""

    def __init__(
        self,
        position: Optional[Position] = None,
        error_code: Optional[int] = None,
        error_message: str = "",
    ) -> None:
        self._position = position
        self._error_code = error_code
        self._error_message = error_message

    async def get_current_position(self, options: PositionOptions) -> Position:
        if self._error_code == PERMISSION_DENIED:
            raise PositionPermissionDeniedError(
                self._error_message or "User denied Geolocation"
            )
        if self._error_code is not None:
            reason = "Timeout expired" if self._error_code == TIMEOUT else "Position unavailable"
            raise PositionUnavailableError(self._error_message or reason)
        if self._position is None:
            raise PositionUnavailableError("Geolocalizzazione non supportata")
        return self._position


async def acquire_position(
    source: PositionSource, options: Optional[PositionOptions] = None
) -> Position:
    """
    Get the current position with a single, bounded attempt.

    Raises:
        PositionPermissionDeniedError: location access denied
        PositionUnavailableError: no fix, or no answer within the timeout
    """
    options = options or PositionOptions.from_settings()

    try:
        return await asyncio.wait_for(
            source.get_current_position(options),
            timeout=options.timeout_ms / 1000,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Position acquisition timed out after {options.timeout_ms}ms")
        raise PositionUnavailableError("Timeout expired")
