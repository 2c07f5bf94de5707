from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from weather_api.config import DEFAULT_TTL_SECONDS
from weather_api.errors import CacheUnavailableError
from weather_api.models import WeatherRecord

logger = logging.getLogger(__name__)


def normalize_city(city: str) -> str:
    return city.strip().lower()


def make_key(city: str, prefix: str = "") -> str:
    return f"{prefix}{normalize_city(city)}"


def create_client(url: str, max_connections: int = 20) -> redis.Redis:
    # One pool per process, shared by every request task.
    pool = redis.ConnectionPool.from_url(url, max_connections=max_connections, decode_responses=True)
    return redis.Redis.from_pool(pool)


class WeatherCache:
    def __init__(self, client: Any, ttl_seconds: Optional[int] = DEFAULT_TTL_SECONDS, prefix: str = ""):
        self.client = client
        self.ttl_seconds = ttl_seconds or None
        self.prefix = prefix

    def key_for(self, city: str) -> str:
        return make_key(city, self.prefix)

    async def get_record(self, key: str) -> Optional[WeatherRecord]:
        try:
            v = await self.client.get(key)
        except RedisError as e:
            logger.warning("cache read failed for %s: %s", key, e)
            raise CacheUnavailableError(f"cache read failed: {e}") from e
        if not v:
            return None
        return WeatherRecord.from_cache(v)

    async def set_record(self, key: str, record: WeatherRecord, ttl: Optional[int] = None) -> None:
        """Store ``record`` under ``key``; ``ttl=None`` uses the default, ``0`` never expires."""
        ex = self.ttl_seconds if ttl is None else (ttl or None)
        try:
            await self.client.set(key, record.to_cache(), ex=ex)
        except RedisError as e:
            logger.warning("cache write failed for %s: %s", key, e)
            raise CacheUnavailableError(f"cache write failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning("cache ping failed: %s", e)
            return False

    async def close(self) -> None:
        await self.client.aclose()
