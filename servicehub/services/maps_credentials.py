"""
Google Maps API key provider.

The key is resolved on first use and reused until it expires or is
invalidated. Resolution order:
1. GOOGLE_MAPS_API_KEY from the environment
2. The key server function at MAPS_KEY_URL, which answers {"apiKey": "..."}

Keys fetched from the server function expire after MAPS_KEY_TTL_SECONDS so
a rotated key is picked up without a restart. Callers that get an
authorization failure from Google call invalidate() to force a refetch.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from servicehub.config import Settings, get_settings
from servicehub.core.errors import CredentialUnavailableError

logger = logging.getLogger(__name__)


class MapsCredentialProvider:
    """Lazily-initialized, refreshable holder of the maps API key."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._clock = clock
        self._key: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()
        self._fetch_count = 0

    @property
    def fetch_count(self) -> int:
        """Number of times the key server function was called."""
        return self._fetch_count

    def _is_fresh(self) -> bool:
        return self._key is not None and self._clock() < self._expires_at

    async def get_key(self) -> str:
        """
        Return a usable API key, fetching it if needed.

        Raises:
            CredentialUnavailableError: no key configured and the fetch failed
        """
        if self._is_fresh():
            return self._key

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self._is_fresh():
                return self._key

            if self._settings.google_maps_api_key:
                self._key = self._settings.google_maps_api_key
                # Static keys only change with the environment
                self._expires_at = float("inf")
                return self._key

            self._key = await self._fetch_key()
            self._expires_at = self._clock() + self._settings.maps_key_ttl_seconds
            logger.info("Maps API key refreshed")
            return self._key

    def invalidate(self) -> None:
        """Drop the cached key; the next get_key() resolves it again."""
        self._key = None
        self._expires_at = 0.0
        logger.info("Maps API key invalidated")

    async def _fetch_key(self) -> str:
        if not self._settings.maps_key_url:
            raise CredentialUnavailableError("Google Maps API key not configured")

        self._fetch_count += 1
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
        try:
            response = await client.get(self._settings.maps_key_url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Maps key fetch failed: {type(e).__name__}")
            raise CredentialUnavailableError("Failed to load maps API key") from e
        finally:
            if self._client is None:
                await client.aclose()

        api_key = data.get("apiKey") if isinstance(data, dict) else None
        if not api_key:
            raise CredentialUnavailableError("API key not found in response")
        return api_key
