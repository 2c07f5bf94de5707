"""Shared fixtures: in-memory Redis with a controllable clock, fake upstream."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from weather_api.cache import WeatherCache
from weather_api.providers import WeatherApiClient
from weather_api.service import WeatherService

API_KEY = "test-key"
BASE_URL = "https://weather.test/v1"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Async stand-in for redis.asyncio.Redis covering get/set(ex=)/ping."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.down = False
        self._data: Dict[str, str] = {}
        self._expires: Dict[str, float] = {}
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        self.calls.append(("get", key))
        exp = self._expires.get(key)
        if exp is not None and self.clock() >= exp:
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.calls.append(("set", key))
        self._data[key] = value
        if ex:
            self._expires[key] = self.clock() + ex
        else:
            self._expires.pop(key, None)
        return True

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True

    def ttl(self, key: str) -> Optional[float]:
        exp = self._expires.get(key)
        return None if exp is None else exp - self.clock()

    @property
    def writes(self) -> List[str]:
        return [k for op, k in self.calls if op == "set"]

    def keys(self) -> List[str]:
        return list(self._data)


def make_payload(
    name: str = "London",
    temp_c: float = 15.0,
    region: str = "City of London, Greater London",
    country: str = "United Kingdom",
    tz_id: str = "Europe/London",
) -> Dict[str, Any]:
    """A trimmed weatherapi.com current.json response."""
    return {
        "location": {
            "name": name,
            "region": region,
            "country": country,
            "lat": 51.52,
            "lon": -0.11,
            "tz_id": tz_id,
            "localtime_epoch": 1718280000,
            "localtime": "2024-06-13 13:00",
        },
        "current": {
            "last_updated_epoch": 1718279100,
            "last_updated": "2024-06-13 12:45",
            "temp_c": temp_c,
            "temp_f": round(temp_c * 9 / 5 + 32, 1),
            "is_day": 1,
            "condition": {"text": "Partly cloudy", "icon": "//cdn.weatherapi.com/116.png", "code": 1003},
            "wind_kph": 13.0,
            "humidity": 72,
            "feelslike_c": temp_c - 1,
            "feelslike_f": round((temp_c - 1) * 9 / 5 + 32, 1),
            "uv": 4.0,
            "gust_kph": 20.2,
        },
    }


class FakeUpstream:
    """httpx transport that answers like weatherapi.com and records requests."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.payloads: Dict[str, Dict[str, Any]] = {"london": make_payload()}
        self.aliases: Dict[str, str] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.params.get("key") != API_KEY:
            return httpx.Response(401, json={"error": {"code": 2006, "message": "API key is invalid."}})
        q = request.url.params.get("q", "").lower()
        q = self.aliases.get(q, q)
        if q not in self.payloads:
            return httpx.Response(400, json={"error": {"code": 1006, "message": "No matching location found."}})
        return httpx.Response(200, content=json.dumps(self.payloads[q]).encode())

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def weather_cache(fake_redis) -> WeatherCache:
    return WeatherCache(fake_redis, ttl_seconds=3600)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def provider(upstream) -> WeatherApiClient:
    return WeatherApiClient(upstream.client(), API_KEY, BASE_URL)


@pytest.fixture
def service(provider, weather_cache) -> WeatherService:
    return WeatherService(provider, weather_cache)
