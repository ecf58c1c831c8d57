"""Pydantic schemas — the interface contracts between all modules.

Fetchers produce WeatherEntry objects, the cache wraps them in a
WeatherReport, and the API/client layers serialize both. Field names are
snake_case in Python and camelCase on the wire (`timeHours`, `rainPercent`).

RULES:
- Modules must use these types, never ad-hoc dicts.
- A field a source structurally cannot report is set to SENTINEL (-1),
  never to 0. Only rain_percent and rain_amount may carry the sentinel.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SENTINEL = -1


class WeatherSource(IntEnum):
    """Which forecast provider a reading came from."""

    TheWeatherChannel = 0
    AccuWeather = 1
    NationalWeatherService = 2

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    WeatherSource.TheWeatherChannel: "TWC",
    WeatherSource.AccuWeather: "Accu",
    WeatherSource.NationalWeatherService: "NWS",
}


class SkyStatus(IntEnum):
    """Short forecast status. Ordinal order matters: aggregation averages it."""

    Sunny = 0
    Cloudy = 1
    Rain = 2
    Storm = 3


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WeatherEntry(_WireModel):
    """One source's forecast for one hourly time slot."""

    source: WeatherSource
    time_hours: int = Field(ge=0, le=23)
    time_minutes: int = Field(ge=0, le=59)
    rain_percent: float = Field(ge=SENTINEL, le=100)  # SENTINEL = not provided
    rain_amount: float = Field(ge=SENTINEL)  # inches; SENTINEL = not provided
    sky_status: SkyStatus
    temperature: float  # Fahrenheit

    @field_validator("rain_percent", "rain_amount")
    @classmethod
    def _sentinel_or_non_negative(cls, v: float) -> float:
        if v < 0 and v != SENTINEL:
            raise ValueError(f"must be non-negative or {SENTINEL}, got {v}")
        return v

    @property
    def slot(self) -> tuple[int, int]:
        return (self.time_hours, self.time_minutes)


class WeatherReport(_WireModel):
    """A timestamped collection of entries captured by one refresh cycle."""

    entries: tuple[WeatherEntry, ...] = ()
    timestamp: datetime


class StatusMessage(BaseModel):
    """Body returned while no report is available yet."""

    message: str
