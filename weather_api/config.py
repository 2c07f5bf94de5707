from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from weather_api.errors import ConfigError

DEFAULT_BASE_URL = "https://api.weatherapi.com/v1"
DEFAULT_TTL_SECONDS = 3600
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    api_key: str
    redis_url: str
    base_url: str = DEFAULT_BASE_URL
    cache_ttl_seconds: Optional[int] = DEFAULT_TTL_SECONDS  # None: no expiry
    cache_prefix: str = ""
    http_timeout_seconds: float = 10.0
    redis_max_connections: int = 20
    single_flight: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def parse_origins(raw: Optional[str]) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()] if raw else []
    return origins or ["*"]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    api_key = (env.get("WEATHER_API_KEY") or "").strip()
    if not api_key:
        raise ConfigError("WEATHER_API_KEY is not set")

    # REDIS_URL is accepted as a fallback for hosted Redis add-ons
    redis_url = (env.get("WEATHER_REDIS_URL") or env.get("REDIS_URL") or "").strip()
    if not redis_url:
        raise ConfigError("WEATHER_REDIS_URL is not set")

    ttl = _int(env, "WEATHER_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS)
    if ttl < 0:
        raise ConfigError("WEATHER_CACHE_TTL_SECONDS must be >= 0")

    port = _int(env, "WEATHER_PORT", DEFAULT_PORT)
    if not 0 < port < 65536:
        raise ConfigError(f"WEATHER_PORT out of range: {port}")

    max_conn = _int(env, "WEATHER_REDIS_MAX_CONNECTIONS", 20)
    if max_conn < 1:
        raise ConfigError("WEATHER_REDIS_MAX_CONNECTIONS must be >= 1")

    origins = parse_origins(env.get("WEATHER_CORS_ORIGINS"))

    log_level = (env.get("WEATHER_LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"WEATHER_LOG_LEVEL is not a logging level: {log_level!r}")

    return Settings(
        api_key=api_key,
        redis_url=redis_url,
        base_url=(env.get("WEATHER_API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        cache_ttl_seconds=ttl or None,
        cache_prefix=env.get("WEATHER_CACHE_PREFIX", ""),
        http_timeout_seconds=_float(env, "WEATHER_HTTP_TIMEOUT_SECONDS", 10.0),
        redis_max_connections=max_conn,
        single_flight=_bool(env, "WEATHER_SINGLE_FLIGHT", True),
        cors_origins=origins,
        host=env.get("WEATHER_HOST", DEFAULT_HOST),
        port=port,
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
