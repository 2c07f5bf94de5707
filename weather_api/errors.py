from __future__ import annotations

from typing import Optional


class ConfigError(RuntimeError):
    """Missing or malformed configuration. Raised at startup, never per request."""


class WeatherServiceError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


# ---------- Upstream ----------
class UpstreamError(WeatherServiceError):
    status_code = 502
    code = "upstream_error"


class CityNotFoundError(UpstreamError):
    status_code = 404
    code = "city_not_found"


class UpstreamAuthError(UpstreamError):
    code = "upstream_auth_failed"


class UpstreamStatusError(UpstreamError):
    code = "upstream_bad_status"

    def __init__(self, detail: str, upstream_status: int):
        super().__init__(detail)
        self.upstream_status = upstream_status


class UpstreamUnavailableError(UpstreamError):
    code = "upstream_unavailable"


class UpstreamTimeoutError(UpstreamError):
    status_code = 504
    code = "upstream_timeout"


class UpstreamPayloadError(UpstreamError):
    code = "upstream_bad_payload"


# ---------- Cache ----------
class CacheError(WeatherServiceError):
    status_code = 503
    code = "cache_error"


class CacheUnavailableError(CacheError):
    code = "cache_unavailable"


class CacheCorruptError(CacheError):
    code = "cache_corrupt"


# ---------- Request ----------
class CityRequiredError(WeatherServiceError):
    status_code = 400
    code = "city_required"


class NotCachedError(WeatherServiceError):
    status_code = 404
    code = "not_cached"
