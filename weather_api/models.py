from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import pytz
from dateutil import parser as dtparse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from weather_api.errors import CacheCorruptError, UpstreamPayloadError


# Upstream payloads carry many more fields than we keep; ignore the rest.
class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class WeatherLocation(_Record):
    name: str
    region: str = ""
    country: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    tz_id: str
    localtime_epoch: int
    localtime: str


class Condition(_Record):
    text: str = ""
    icon: str = ""
    code: Optional[int] = None


class CurrentConditions(_Record):
    last_updated_epoch: int
    last_updated: str
    temp_c: float
    temp_f: float
    is_day: Optional[int] = None
    condition: Optional[Condition] = None
    wind_kph: Optional[float] = None
    humidity: Optional[int] = None
    feelslike_c: Optional[float] = None
    feelslike_f: Optional[float] = None


class WeatherRecord(_Record):
    """Snapshot of current conditions for one location."""

    location: WeatherLocation
    current: CurrentConditions

    @classmethod
    def from_upstream(cls, payload: Any) -> "WeatherRecord":
        if not isinstance(payload, dict):
            raise UpstreamPayloadError(f"expected a JSON object, got {type(payload).__name__}")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise UpstreamPayloadError(f"unexpected weather payload: {e.error_count()} invalid field(s)") from e

    def to_cache(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_cache(cls, raw: str) -> "WeatherRecord":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise CacheCorruptError("cached weather record could not be parsed") from e

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def local_time(self) -> datetime:
        """Provider local time as an aware datetime in the location's zone."""
        naive = dtparse.parse(self.location.localtime)
        try:
            tzinfo = pytz.timezone(self.location.tz_id)
        except pytz.UnknownTimeZoneError:
            return datetime.fromtimestamp(self.location.localtime_epoch, tz=pytz.UTC)
        return tzinfo.localize(naive.replace(tzinfo=None))

    def summary(self) -> str:
        loc = self.location
        cur = self.current
        place = ", ".join(p for p in (loc.name, loc.region, loc.country) if p)
        parts = [f"{place}: {cur.temp_c:g}°C ({cur.temp_f:g}°F)"]
        if cur.condition and cur.condition.text:
            parts.append(cur.condition.text)
        parts.append(f"local time {self.local_time().strftime('%Y-%m-%d %H:%M %Z')}")
        parts.append(f"updated {cur.last_updated}")
        return ", ".join(parts)
