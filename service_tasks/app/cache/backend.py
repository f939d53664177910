"""
Key-value backends for the task cache.
"""

import json
from typing import Any, List, Optional, Protocol

import redis.asyncio as redis

from shared.errors import CacheError
from shared.logging import get_logger


class CacheBackend(Protocol):
    """Minimal key-value contract the task cache relies on.

    Implementations raise on backend faults; callers decide the fallback.
    """

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    async def delete(self, *keys: str) -> int:
        ...

    async def keys(self, pattern: str) -> List[str]:
        ...

    async def ping(self) -> bool:
        ...


class RedisCacheBackend:
    """Redis backend storing JSON-serialized values."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("tasks.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Connect to Redis."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
            await self.redis.ping()
            self.logger.info("Redis cache backend started")
        except Exception as e:
            self.logger.error("Failed to start Redis cache backend", error=str(e))
            raise CacheError("Failed to connect to Redis", cause=e)

    async def stop(self):
        """Close the Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache backend stopped")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise CacheError("Redis cache backend is not started")
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._client().get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._client().set(key, json.dumps(value, default=str), ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._client().delete(*keys))

    async def keys(self, pattern: str) -> List[str]:
        return list(await self._client().keys(pattern))

    async def ping(self) -> bool:
        return bool(await self._client().ping())
