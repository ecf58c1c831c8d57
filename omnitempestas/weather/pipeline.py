"""Wiring for the acquisition pipeline.

`build_pipeline()` constructs every service once from Settings; the app
lifespan owns the result, starts it after startup and closes it on
shutdown. Nothing in the weather package is a module-level singleton.
"""

from __future__ import annotations

from dataclasses import dataclass

from omnitempestas.common.config import Settings
from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import WeatherSource
from omnitempestas.weather.accu import AccuFetcher
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.browser import BrowserSession
from omnitempestas.weather.cache import ReportCache
from omnitempestas.weather.guard import FetchGuard, FetchState
from omnitempestas.weather.nws import NWSFetcher
from omnitempestas.weather.rate_limiter import RateLimiter
from omnitempestas.weather.scheduler import RefreshScheduler
from omnitempestas.weather.twc import TWCFetcher

logger = get_logger("SYSTEM")


@dataclass
class WeatherPipeline:
    """Every long-lived service of the acquisition pipeline."""

    state: FetchState
    guard: FetchGuard
    browser: BrowserSession
    fetchers: dict[WeatherSource, SourceFetcher]
    cache: ReportCache
    scheduler: RefreshScheduler

    def start(self) -> None:
        configured = [f.name for f in self.fetchers.values() if f.is_configured]
        logger.info(
            "Starting weather pipeline",
            extra={"data": {"configured_sources": configured}},
        )
        self.scheduler.start()

    async def aclose(self) -> None:
        """Stop the scheduler first, then release the browser it was driving."""
        try:
            await self.scheduler.stop()
        finally:
            await self.browser.close()


def build_pipeline(settings: Settings) -> WeatherPipeline:
    """Construct the pipeline services from settings."""
    state = FetchState()
    guard = FetchGuard(
        state,
        num_retries=settings.num_retries,
        retry_wait_seconds=settings.retry_wait_seconds,
    )
    browser = BrowserSession(
        headless=settings.is_production,
        timeout_ms=settings.browser_timeout_ms,
    )
    fetchers: dict[WeatherSource, SourceFetcher] = {
        WeatherSource.TheWeatherChannel: TWCFetcher(
            settings.twc_url, settings.max_weather_entries, browser
        ),
        WeatherSource.AccuWeather: AccuFetcher(
            settings.accu_url, settings.max_weather_entries, browser
        ),
        WeatherSource.NationalWeatherService: NWSFetcher(
            settings.nws_url,
            settings.max_weather_entries,
            user_agent=settings.nws_user_agent,
            timeout=settings.http_timeout_seconds,
            rate_limiter=RateLimiter(
                calls_per_second=settings.nws_rate_limit_per_second
            ),
        ),
    }
    cache = ReportCache()
    scheduler = RefreshScheduler(
        list(fetchers.values()),
        guard,
        cache,
        period_seconds=settings.refresh_period_seconds,
    )
    return WeatherPipeline(
        state=state,
        guard=guard,
        browser=browser,
        fetchers=fetchers,
        cache=cache,
        scheduler=scheduler,
    )
