"""NWS (National Weather Service) hourly forecast API client.

The configured URL is the `forecastHourly` link from
`api.weather.gov/points/{lat},{lon}`, e.g.
`https://api.weather.gov/gridpoints/LWX/97,71/forecast/hourly`.

NWS does not publish an hourly precipitation amount, so every entry from
this source carries the sentinel for rain_amount.

Each call is a single attempt; FetchGuard owns retries. Requests are
spaced by the fetcher's rate limiter as NWS asks.
"""

from __future__ import annotations

import httpx

from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import WeatherEntry, WeatherSource
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.exceptions import ParseError, TransientNetworkError
from omnitempestas.weather.normalizer import normalize_nws_hourly
from omnitempestas.weather.rate_limiter import RateLimiter

logger = get_logger("WEATHER")


class NWSFetcher(SourceFetcher):
    """Fetches the NWS hourly forecast JSON.

    Args:
        url: NWS forecastHourly URL.
        max_entries: Forecast horizon.
        user_agent: NWS requires an identifying User-Agent.
        timeout: Request timeout in seconds.
        rate_limiter: Spaces requests; a one-per-second limiter if omitted.
    """

    source = WeatherSource.NationalWeatherService

    def __init__(
        self,
        url: str,
        max_entries: int,
        user_agent: str,
        timeout: float = 30.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        super().__init__(url, max_entries)
        self.user_agent = user_agent
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()

    async def _fetch(self) -> list[WeatherEntry]:
        payload = await self._get_json()
        logger.debug("NWS API call complete", extra={"data": {"url": self.url}})
        return normalize_nws_hourly(payload, self.max_entries)

    async def _get_json(self) -> dict:
        """GET the forecast URL and decode JSON.

        Creates a new httpx.AsyncClient per call so no connection state
        outlives one attempt.

        Raises:
            TransientNetworkError: On HTTP error status or network failure.
            ParseError: If the body is not JSON.
        """
        await self.rate_limiter.acquire()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.url,
                    headers={
                        "User-Agent": self.user_agent,
                        "Accept": "application/geo+json",
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise TransientNetworkError(
                f"HTTP {status_code} fetching NWS forecast",
                context={"url": self.url, "status_code": status_code},
            ) from exc
        except httpx.RequestError as exc:
            raise TransientNetworkError(
                f"Network error fetching NWS forecast: {exc}",
                context={"url": self.url},
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(
                "NWS response is not valid JSON",
                context={"url": self.url},
            ) from exc
