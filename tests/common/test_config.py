"""Tests for application configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from omnitempestas.common.config import Settings, get_settings


class TestSettings:
    """Test Settings loading from environment variables."""

    def test_settings_loads(self):
        assert get_settings() is not None

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_environment_defaults_to_testing(self):
        """In tests, environment is set to 'testing' by conftest."""
        assert get_settings().environment == "testing"

    def test_fetch_cycle_defaults(self, monkeypatch):
        for var in ("MAX_WEATHER_ENTRIES", "NUM_RETRIES", "RETRY_WAIT_TIME_MS", "REFRESH_PERIOD_MINUTES"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)
        assert settings.max_weather_entries == 24
        assert settings.num_retries == 3
        assert settings.retry_wait_time_ms == 300_000
        assert settings.retry_wait_seconds == 300.0
        assert settings.refresh_period_seconds == 3600.0

    def test_sources_unconfigured_by_default(self):
        settings = get_settings()
        assert settings.twc_url == ""
        assert settings.accu_url == ""
        assert settings.nws_url == ""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("NWS_URL", "https://api.weather.gov/gridpoints/LWX/97,71/forecast/hourly")
        monkeypatch.setenv("NUM_RETRIES", "5")
        settings = Settings(_env_file=None)
        assert settings.nws_url.endswith("/forecast/hourly")
        assert settings.num_retries == 5

    @pytest.mark.parametrize("environment", ["production", "PROD", "Production"])
    def test_is_production(self, environment):
        assert Settings(_env_file=None, environment=environment).is_production is True

    @pytest.mark.parametrize("environment", ["development", "testing", "staging"])
    def test_is_not_production(self, environment):
        assert Settings(_env_file=None, environment=environment).is_production is False

    def test_rejects_zero_entries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_weather_entries=0)

    def test_rejects_zero_retries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, num_retries=0)

    def test_rejects_zero_nws_rate(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, nws_rate_limit_per_second=0)
