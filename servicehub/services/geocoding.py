"""Google Geocoding integration with Redis caching."""

import hashlib
import logging
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from servicehub.config import get_settings
from servicehub.core.errors import AddressNotFoundError, GeocodingError
from servicehub.services.cache import cache_service
from servicehub.services.maps_credentials import MapsCredentialProvider

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class GeocodeResult:
    """Coordinates of a service address."""

    latitude: float
    longitude: float
    formatted_address: str
    place_id: str


class GeocodingService:
    """
    Google Geocoding API client.

    Caching Strategy:
    - Keyed by the normalized address, so repeated bookings at the same
      address never hit the API twice within the TTL
    - Cache failures degrade to a direct API call

    Credential policy: a REQUEST_DENIED answer usually means the key was
    rotated, so the provider is invalidated and the call retried once.
    """

    def __init__(self, credentials: Optional[MapsCredentialProvider] = None) -> None:
        self._credentials = credentials or MapsCredentialProvider()
        self._client: Optional[httpx.AsyncClient] = None
        self._cache_hits = 0
        self._cache_misses = 0
        self._api_errors = 0

    async def start(self, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize HTTP client with connection pooling."""
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, connect=5.0),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )
        logger.info("GeocodingService started")

    async def stop(self) -> None:
        """Close HTTP client and log stats."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info(
            f"GeocodingService stopped - Cache hits: {self._cache_hits}, "
            f"misses: {self._cache_misses}, API errors: {self._api_errors}"
        )

    @staticmethod
    def _cache_key(address: str) -> str:
        normalized = " ".join(address.lower().split())
        digest = hashlib.sha256(normalized.encode()).hexdigest()[:24]
        return f"geocode:v1:{digest}"

    @property
    def stats(self) -> dict:
        """Get cache/API statistics."""
        total = self._cache_hits + self._cache_misses
        hit_rate = (self._cache_hits / total * 100) if total > 0 else 0
        return {
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "api_errors": self._api_errors,
            "hit_rate_pct": round(hit_rate, 1),
        }

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Resolve an address to coordinates.

        Raises:
            AddressNotFoundError: Google found no match
            CredentialUnavailableError: no API key could be resolved
            GeocodingError: transport or provider failure
        """
        cache_key = self._cache_key(address)

        cached = await cache_service.get(cache_key)
        if cached:
            try:
                result = GeocodeResult(**cached)
            except TypeError:
                # Entry has a different shape, refetch and overwrite it
                logger.warning(f"Discarding malformed geocode cache entry {cache_key}")
                await cache_service.delete(cache_key)
            else:
                self._cache_hits += 1
                logger.debug(f"Geocode cache hit for {cache_key}")
                return result

        self._cache_misses += 1

        data = await self._request(address)
        if data.get("status") == "REQUEST_DENIED":
            logger.warning("Geocoding request denied, refreshing API key")
            self._credentials.invalidate()
            data = await self._request(address)

        status = data.get("status")
        logger.info(f"Geocode response status: {status}")

        if status == "ZERO_RESULTS" or (status == "OK" and not data.get("results")):
            raise AddressNotFoundError("Address not found")
        if status != "OK":
            self._api_errors += 1
            raise GeocodingError(f"Geocoding failed with status {status}")

        first = data["results"][0]
        result = GeocodeResult(
            latitude=first["geometry"]["location"]["lat"],
            longitude=first["geometry"]["location"]["lng"],
            formatted_address=first.get("formatted_address", address),
            place_id=first.get("place_id", ""),
        )

        await cache_service.set(
            cache_key, asdict(result), ttl_seconds=settings.geocode_cache_ttl_seconds
        )
        return result

    async def _request(self, address: str) -> dict:
        if not self._client:
            raise GeocodingError("Geocoding HTTP client not initialized")

        api_key = await self._credentials.get_key()

        try:
            response = await self._client.get(
                settings.google_geocode_url,
                params={
                    "address": address,
                    "key": api_key,
                    "language": "it",
                    "region": "it",
                },
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            self._api_errors += 1
            logger.warning("Geocoding API timeout")
            raise GeocodingError("Geocoding API timeout") from e
        except httpx.HTTPStatusError as e:
            self._api_errors += 1
            logger.warning(f"Geocoding API error: {e.response.status_code}")
            raise GeocodingError(f"Geocoding API error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            self._api_errors += 1
            logger.warning(f"Geocoding request failed: {type(e).__name__}")
            raise GeocodingError("Geocoding request failed") from e


# Global geocoding service instance
geocoding_service = GeocodingService()
