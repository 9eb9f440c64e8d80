"""Tests for the Redis JSON cache and its use by geocoding."""

import httpx
import pytest

from servicehub.config import Settings
from servicehub.services import geocoding
from servicehub.services.cache import CacheService
from servicehub.services.geocoding import GeocodingService
from servicehub.services.maps_credentials import MapsCredentialProvider


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache wrapper."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.data.pop(key, None)


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def setex(self, key, ttl, value):
        raise ConnectionError("redis down")


class TestCacheService:
    """Tests for graceful degradation and namespacing."""

    @pytest.mark.anyio
    async def test_disabled_cache_misses(self):
        cache = CacheService()

        assert cache.is_available is False
        assert await cache.get("anything") is None
        assert await cache.set("anything", {"a": 1}, ttl_seconds=10) is False

    @pytest.mark.anyio
    async def test_round_trip_is_namespaced(self):
        fake = FakeRedis()
        cache = CacheService(namespace="test", client=fake)

        assert await cache.set("geocode:abc", {"lat": 45.1}, ttl_seconds=30) is True
        assert await cache.get("geocode:abc") == {"lat": 45.1}
        assert list(fake.data) == ["test:geocode:abc"]
        assert fake.ttls["test:geocode:abc"] == 30

    @pytest.mark.anyio
    async def test_corrupt_entry_dropped(self):
        fake = FakeRedis()
        fake.data["test:bad"] = "{not json"
        cache = CacheService(namespace="test", client=fake)

        assert await cache.get("bad") is None
        assert "test:bad" not in fake.data

    @pytest.mark.anyio
    async def test_redis_errors_degrade_to_miss(self):
        cache = CacheService(client=BrokenRedis())

        assert await cache.get("key") is None
        assert await cache.set("key", {"a": 1}, ttl_seconds=10) is False


class TestGeocodeCaching:
    """Repeated lookups of the same address hit Redis, not Google."""

    @pytest.mark.anyio
    async def test_second_lookup_served_from_cache(self, monkeypatch):
        monkeypatch.setattr(geocoding, "cache_service", CacheService(client=FakeRedis()))
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                200,
                json={
                    "status": "OK",
                    "results": [
                        {
                            "geometry": {"location": {"lat": 41.9028, "lng": 12.4964}},
                            "formatted_address": "Via del Corso 1, Roma",
                            "place_id": "roma-1",
                        }
                    ],
                },
            )

        provider = MapsCredentialProvider(settings=Settings(google_maps_api_key="static-key"))
        service = GeocodingService(credentials=provider)
        await service.start(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            first = await service.geocode("Via del Corso 1, Roma")
            # Case and spacing do not change the cache key
            second = await service.geocode("  via del corso 1,   ROMA ")
        finally:
            await service.stop()

        assert first == second
        assert len(calls) == 1
        assert service.stats["cache_hits"] == 1
        assert service.stats["cache_misses"] == 1

    @pytest.mark.anyio
    async def test_malformed_entry_refetched(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(geocoding, "cache_service", CacheService(namespace="test", client=fake))
        stale_key = "test:" + GeocodingService._cache_key("Piazza Duomo, Milano")
        fake.data[stale_key] = '{"lat": 45.46, "lng": 9.19}'

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "status": "OK",
                    "results": [
                        {
                            "geometry": {"location": {"lat": 45.4642, "lng": 9.19}},
                            "formatted_address": "Piazza del Duomo, Milano",
                            "place_id": "duomo",
                        }
                    ],
                },
            )

        provider = MapsCredentialProvider(settings=Settings(google_maps_api_key="static-key"))
        service = GeocodingService(credentials=provider)
        await service.start(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            result = await service.geocode("Piazza Duomo, Milano")
        finally:
            await service.stop()

        assert result.place_id == "duomo"
        assert service.stats["cache_hits"] == 0
        assert service.stats["cache_misses"] == 1
        assert '"place_id": "duomo"' in fake.data[stale_key]
