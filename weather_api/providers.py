from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from weather_api.config import DEFAULT_BASE_URL
from weather_api.errors import (
    CityNotFoundError,
    UpstreamAuthError,
    UpstreamPayloadError,
    UpstreamStatusError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from weather_api.models import WeatherRecord

logger = logging.getLogger(__name__)

# weatherapi.com error codes (returned in {"error": {"code": ..., "message": ...}})
NO_MATCHING_LOCATION = 1006


# Provider interface
class WeatherProvider:
    name: str

    async def fetch(self, city: str) -> WeatherRecord:
        raise NotImplementedError


def _error_body(resp: httpx.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    err = body.get("error") if isinstance(body, dict) else None
    return err if isinstance(err, dict) else {}


class WeatherApiClient(WeatherProvider):
    """Current-conditions client for a weatherapi.com style endpoint.

    One GET per call, no retries. The ``httpx.AsyncClient`` is owned by the
    caller and shared across requests.
    """

    name = "weatherapi.com"

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str = DEFAULT_BASE_URL):
        self.http = http
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/current.json"

    async def fetch(self, city: str) -> WeatherRecord:
        params = {"key": self.api_key, "q": city}
        logger.info("upstream request for %r", city)
        try:
            r = await self.http.get(self.url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"{self.name} timed out for {city!r}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"{self.name} request failed: {e}") from e

        if r.status_code != 200:
            self._raise_for_status(r, city)

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamPayloadError(f"{self.name} returned non-JSON body: {r.text[:200]}") from e
        return WeatherRecord.from_upstream(data)

    def _raise_for_status(self, r: httpx.Response, city: str) -> None:
        err = _error_body(r)
        code: Optional[int] = err.get("code")
        message = err.get("message") or r.text[:200]
        logger.debug("upstream status %s for %r: %s", r.status_code, city, message)

        if r.status_code == 400 and code == NO_MATCHING_LOCATION:
            raise CityNotFoundError(f"No matching location found for {city!r}")
        if r.status_code in (401, 403):
            raise UpstreamAuthError(f"{self.name} rejected the API key: {message}")
        raise UpstreamStatusError(f"{self.name} failed: {r.status_code} {message}", upstream_status=r.status_code)
