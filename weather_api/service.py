from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from weather_api.cache import WeatherCache
from weather_api.models import WeatherRecord
from weather_api.providers import WeatherProvider
from weather_api.singleflight import SingleFlight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lookup:
    record: WeatherRecord
    cache_hit: bool


class WeatherService:
    """Cache-first weather lookup.

    Reads and writes are both keyed on the normalized caller input, so a
    request for "NYC" is cached under "nyc" even when the provider answers
    with "New York".
    """

    def __init__(self, provider: WeatherProvider, cache: WeatherCache, single_flight: bool = True):
        self.provider = provider
        self.cache = cache
        self.flights: Optional[SingleFlight] = SingleFlight() if single_flight else None

    async def get_weather(self, city: str) -> Lookup:
        key = self.cache.key_for(city)

        cached = await self.cache.get_record(key)
        if cached is not None:
            logger.debug("cache hit for %s", key)
            return Lookup(cached, cache_hit=True)

        logger.info("cache miss for %s", key)
        if self.flights is None:
            return await self._fetch_and_store(city, key)
        return await self.flights.do(key, lambda: self._refetch(city, key))

    async def peek(self, city: str) -> Optional[WeatherRecord]:
        return await self.cache.get_record(self.cache.key_for(city))

    async def _refetch(self, city: str, key: str) -> Lookup:
        # A flight that finished between our miss and now has already stored the record.
        cached = await self.cache.get_record(key)
        if cached is not None:
            logger.debug("cache filled by an earlier flight for %s", key)
            return Lookup(cached, cache_hit=True)
        return await self._fetch_and_store(city, key)

    async def _fetch_and_store(self, city: str, key: str) -> Lookup:
        record = await self.provider.fetch(city)
        await self.cache.set_record(key, record)
        if record.location.name.lower() != key.removeprefix(self.cache.prefix):
            logger.debug("stored %s (provider name %r)", key, record.location.name)
        return Lookup(record, cache_hit=False)
