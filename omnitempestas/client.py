"""Async client for the Omnitempestas report API.

Fetches the raw report and blends it locally, so each consumer chooses
which sources to trust without another round trip.

Usage:
    from omnitempestas.client import ForecastClient, next_fetch_delay

    client = ForecastClient("http://localhost:8000")
    report = await client.get_aggregated_report([WeatherSource.AccuWeather])
    if report is not None:
        await asyncio.sleep(next_fetch_delay(report.timestamp))
    await client.close()
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import UTC, datetime, timedelta

import httpx
from pydantic import ValidationError

from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import WeatherReport, WeatherSource
from omnitempestas.weather.aggregation import aggregate_entries
from omnitempestas.weather.exceptions import ParseError, TransientNetworkError

logger = get_logger("CLIENT")

# The server refreshes hourly; polling a few minutes later picks up the new cycle
REFETCH_AFTER = timedelta(minutes=65)


def next_fetch_delay(timestamp: datetime, now: datetime | None = None) -> float:
    """Seconds until a report captured at `timestamp` is worth re-fetching.

    Returns 0 when the report is already due.
    """
    now = now or datetime.now(UTC)
    return max(0.0, (timestamp + REFETCH_AFTER - now).total_seconds())


class ForecastClient:
    """Reads reports from a running Omnitempestas server.

    Args:
        base_url: Server root, e.g. "http://localhost:8000".
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass an ASGITransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def get_report(self) -> WeatherReport | None:
        """Fetch the raw cached report.

        Returns:
            The report, or None while the server has none yet (503).

        Raises:
            TransientNetworkError: Network failure or unexpected status.
            ParseError: The body is not a valid report.
        """
        try:
            response = await self.client.get("/api/weather")
        except httpx.RequestError as exc:
            raise TransientNetworkError(
                f"Network error: {exc}", context={"base_url": self.base_url}
            ) from exc

        if response.status_code == 503:
            try:
                message = response.json().get("message")
            except (ValueError, AttributeError) as exc:
                raise ParseError(
                    "Malformed not-ready body", context={"base_url": self.base_url}
                ) from exc
            logger.info("No report available yet", extra={"data": {"message": message}})
            return None

        if response.status_code >= 400:
            raise TransientNetworkError(
                f"Report request failed with HTTP {response.status_code}",
                context={"base_url": self.base_url, "status": response.status_code},
            )

        try:
            report = WeatherReport.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ParseError(
                f"Malformed report body: {exc}", context={"base_url": self.base_url}
            ) from exc

        logger.debug(
            "Report fetched",
            extra={
                "data": {
                    "entries": len(report.entries),
                    "timestamp": report.timestamp.isoformat(),
                }
            },
        )
        return report

    async def get_aggregated_report(
        self, sources: Collection[WeatherSource] | None = None
    ) -> WeatherReport | None:
        """Fetch the raw report and blend it per time slot for `sources`."""
        report = await self.get_report()
        if report is None:
            return None
        return WeatherReport(
            entries=tuple(aggregate_entries(report.entries, sources)),
            timestamp=report.timestamp,
        )
