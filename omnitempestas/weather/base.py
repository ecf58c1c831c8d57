"""Common contract for the per-source forecast fetchers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import WeatherEntry, WeatherSource
from omnitempestas.weather.exceptions import SourceUnavailable

logger = get_logger("WEATHER")


class SourceFetcher(ABC):
    """Turns one external source into at most `max_entries` hourly entries.

    Subclasses implement `_fetch()` as a single attempt; retries and the
    fetch-in-progress flag belong to FetchGuard.

    Args:
        url: Page or API URL for this source. Empty means not configured.
        max_entries: Forecast horizon, roughly the number of hours ahead.
    """

    source: WeatherSource

    def __init__(self, url: str, max_entries: int) -> None:
        self.url = url
        self.max_entries = max_entries

    @property
    def name(self) -> str:
        return self.source.label

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def require_configured(self) -> None:
        """Raise SourceUnavailable if this source has no URL.

        Raises:
            SourceUnavailable: The URL setting is empty.
        """
        if not self.is_configured:
            raise SourceUnavailable(
                f"{self.name} URL was not specified; skipping",
                context={"source": self.name},
            )

    async def fetch(self) -> list[WeatherEntry]:
        """Run one fetch attempt, truncated to the configured horizon."""
        self.require_configured()
        logger.debug(f"Fetching {self.name} data")

        entries = (await self._fetch())[: self.max_entries]

        logger.debug(
            f"Fetched {len(entries)} entries from {self.name}",
            extra={"data": {"source": self.name, "count": len(entries)}},
        )
        return entries

    @abstractmethod
    async def _fetch(self) -> list[WeatherEntry]:
        """Fetch and normalize entries in the order the source presents them."""
