from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Literal, Optional

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from weather_api import __version__, cache
from weather_api.config import Settings, load_settings, parse_origins
from weather_api.errors import CityRequiredError, NotCachedError, WeatherServiceError
from weather_api.providers import WeatherApiClient
from weather_api.service import WeatherService

logger = logging.getLogger(__name__)

APP_NAME = "City Weather API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Injected service (tests): nothing to build or tear down.
    if app.state.service is not None:
        yield
        return

    # Missing credentials abort startup here, before any request is served.
    settings: Settings = app.state.settings or load_settings()
    # Pool first: a bad Redis URL raises here, before anything needs closing.
    redis_client = cache.create_client(settings.redis_url, settings.redis_max_connections)
    weather_cache = cache.WeatherCache(redis_client, settings.cache_ttl_seconds, settings.cache_prefix)
    http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    app.state.settings = settings
    app.state.service = WeatherService(
        WeatherApiClient(http, settings.api_key, settings.base_url),
        weather_cache,
        single_flight=settings.single_flight,
    )
    logger.info("weather service ready (ttl=%s, single_flight=%s)", settings.cache_ttl_seconds, settings.single_flight)
    try:
        yield
    finally:
        await http.aclose()
        await weather_cache.close()
        app.state.service = None
        logger.info("weather service stopped")


def get_service(request: Request) -> WeatherService:
    return request.app.state.service


async def _service_error(request: Request, exc: WeatherServiceError) -> JSONResponse:
    logger.warning("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.code})


def _require_city(city: str) -> str:
    if not city.strip():
        raise CityRequiredError("City must not be empty")
    return city


def create_app(settings: Optional[Settings] = None, service: Optional[WeatherService] = None) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service

    if settings is not None:
        origins = settings.cors_origins
    else:
        origins = parse_origins(os.environ.get("WEATHER_CORS_ORIGINS"))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_exception_handler(WeatherServiceError, _service_error)

    # ---------- Endpoints ----------
    @app.get("/", response_class=PlainTextResponse)
    async def index():
        return "Hello World"

    @app.get("/health")
    async def health():
        return Response(status_code=200)

    @app.get("/ready")
    async def ready(svc: WeatherService = Depends(get_service)):
        ok = await svc.cache.ping()
        body = {"ok": ok, "name": APP_NAME, "version": __version__}
        return JSONResponse(status_code=200 if ok else 503, content=body)

    @app.get("/weather/{city}/cached")
    async def cached_weather(city: str, svc: WeatherService = Depends(get_service)):
        record = await svc.peek(_require_city(city))
        if record is None:
            raise NotCachedError(f"No cached weather for {city!r}")
        return JSONResponse(record.to_dict(), headers={"X-Cache": "HIT"})

    @app.get("/weather/{city}")
    async def city_weather(
        city: str,
        format: Literal["json", "text"] = Query(default="json"),
        svc: WeatherService = Depends(get_service),
    ):
        lookup = await svc.get_weather(_require_city(city))
        headers = {"X-Cache": "HIT" if lookup.cache_hit else "MISS"}
        if format == "text":
            return PlainTextResponse(lookup.record.summary(), headers=headers)
        return JSONResponse(lookup.record.to_dict(), headers=headers)

    return app


app = create_app()
