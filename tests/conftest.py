"""Root test configuration — shared fixtures for all test modules.

IMPORTANT: Environment variables are set BEFORE any omnitempestas imports
so that config.py can load Settings without a .env file.
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("NWS_RATE_LIMIT_PER_SECOND", "1000")
for _url_var in ("TWC_URL", "ACCU_URL", "NWS_URL"):
    os.environ.setdefault(_url_var, "")

# Now safe to import omnitempestas modules
from collections.abc import Callable

import pytest

from omnitempestas.common.config import Settings, get_settings
from omnitempestas.common.schemas import SkyStatus, WeatherEntry, WeatherSource
from omnitempestas.weather.base import SourceFetcher

# ─── Clear cached settings so test env vars are used ───
get_settings.cache_clear()


# ─── Test Settings ───


@pytest.fixture
def test_settings() -> Settings:
    """Settings as loaded from the test environment."""
    return get_settings()


# ─── Entry Factory ───


@pytest.fixture
def make_entry() -> Callable[..., WeatherEntry]:
    """Build a WeatherEntry with sensible defaults, overriding any field."""

    def _make(**overrides) -> WeatherEntry:
        fields = {
            "source": WeatherSource.TheWeatherChannel,
            "time_hours": 13,
            "time_minutes": 0,
            "rain_percent": 10,
            "rain_amount": 0,
            "sky_status": SkyStatus.Sunny,
            "temperature": 70,
        }
        fields.update(overrides)
        return WeatherEntry(**fields)

    return _make


# ─── Scripted Fetcher ───


class ScriptedFetcher(SourceFetcher):
    """SourceFetcher whose attempts follow a script of results or exceptions.

    The last scripted outcome repeats once the script runs out.
    """

    def __init__(
        self,
        source: WeatherSource,
        outcomes: list,
        url: str = "https://forecast.example.test/hourly",
        max_entries: int = 24,
    ) -> None:
        self.source = source
        super().__init__(url, max_entries)
        self.outcomes = list(outcomes)
        self.calls = 0

    async def _fetch(self) -> list[WeatherEntry]:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return list(outcome)


@pytest.fixture
def scripted_fetcher() -> type[ScriptedFetcher]:
    return ScriptedFetcher
