"""Application configuration via environment variables.

Uses pydantic-settings to load from .env file and environment variables.
All config is centralized here — modules should import `get_settings()`.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─── App ───
    environment: str = "development"  # "production" hides dev routes, headless browser
    log_level: str = "INFO"

    # ─── Fetch Cycle ───
    max_weather_entries: int = Field(default=24, ge=1)
    num_retries: int = Field(default=3, ge=1)  # total attempts, not retries after the first
    retry_wait_time_ms: int = Field(default=300_000, ge=0)
    refresh_period_minutes: float = Field(default=60.0, gt=0)

    # ─── Sources (empty = skipped) ───
    # https://weather.com/weather/hourbyhour/l/<location id>
    twc_url: str = ""
    # https://www.accuweather.com/en/us/<locale>/<zip>/hourly-weather-forecast/<id>
    accu_url: str = ""
    # https://api.weather.gov/gridpoints/<office>/<x>,<y>/forecast/hourly
    nws_url: str = ""

    # ─── NWS API ───
    nws_user_agent: str = "Omnitempestas/1.0 (contact@example.com)"
    nws_rate_limit_per_second: float = Field(default=1.0, gt=0)
    http_timeout_seconds: float = 30.0

    # ─── Browser ───
    browser_timeout_ms: int = 30_000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"prod", "production"}

    @property
    def retry_wait_seconds(self) -> float:
        return self.retry_wait_time_ms / 1000

    @property
    def refresh_period_seconds(self) -> float:
        return self.refresh_period_minutes * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton.

    Uses lru_cache so Settings is only instantiated once.
    In tests, call `get_settings.cache_clear()` to reset.
    """
    return Settings()
