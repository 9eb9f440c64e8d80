"""Redis-backed JSON cache shared by the external API clients."""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from servicehub.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class CacheService:
    """
    Namespaced JSON cache on Redis.

    Redis is optional: when it is down or unreachable every read is a miss
    and every write is skipped, so callers fall back to the upstream API.
    """

    def __init__(self, namespace: str = "servicehub", client: Optional[redis.Redis] = None) -> None:
        self._namespace = namespace
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def connect(self) -> None:
        """Open the Redis connection, leaving the cache disabled on failure."""
        try:
            self._client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
            )
            await self._client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis unavailable, caching disabled: {type(e).__name__}: {e}")
            self._client = None

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        if not self._client:
            return None

        try:
            raw = await self._client.get(self._key(key))
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {type(e).__name__}")
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            # Entry written by an incompatible version, drop it
            await self.delete(key)
            return None

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> bool:
        """Store a JSON document for ttl_seconds. Returns True if written."""
        if not self._client:
            return False

        try:
            await self._client.setex(self._key(key), ttl_seconds, json.dumps(value))
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {type(e).__name__}")
            return False

    async def delete(self, key: str) -> None:
        if not self._client:
            return

        try:
            await self._client.delete(self._key(key))
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {type(e).__name__}")

    @property
    def is_available(self) -> bool:
        return self._client is not None


# Global cache instance
cache_service = CacheService()
