"""AccuWeather hourly forecast fetcher.

AccuWeather splits the next 24+ hours across two pages: the configured
URL (rest of today) and the same URL with `?day=2` (tomorrow). Both are
rendered in the shared browser, every card but the first (which loads
expanded) is clicked open, and the results are concatenated in page order
before truncating to the horizon.
"""

from __future__ import annotations

import httpx
from playwright.async_api import Page

from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import WeatherEntry, WeatherSource
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.browser import BrowserSession, browser_errors, load_page
from omnitempestas.weather.normalizer import normalize_accu_page

logger = get_logger("WEATHER")

CARD_HEADER_SELECTOR = "div.hourly-detailed-card-header"
CARD_SELECTOR = "div.accordion-item.hour"


class AccuFetcher(SourceFetcher):
    """Scrapes the two rendered AccuWeather hourly pages through the shared browser."""

    source = WeatherSource.AccuWeather

    def __init__(self, url: str, max_entries: int, browser: BrowserSession) -> None:
        super().__init__(url, max_entries)
        self.browser = browser

    def page_urls(self) -> list[str]:
        """Today's page followed by tomorrow's (`day=2`)."""
        return [self.url, str(httpx.URL(self.url).copy_merge_params({"day": "2"}))]

    async def _fetch(self) -> list[WeatherEntry]:
        entries: list[WeatherEntry] = []
        async with self.browser.page() as page:
            for url in self.page_urls():
                page_entries = await self._fetch_page(page, url)
                logger.debug(
                    "AccuWeather page parsed",
                    extra={"data": {"url": url, "count": len(page_entries)}},
                )
                entries.extend(page_entries)
        return entries

    async def _fetch_page(self, page: Page, url: str) -> list[WeatherEntry]:
        await load_page(page, url, CARD_HEADER_SELECTOR)

        with browser_errors("card expansion", url):
            headers = page.locator(f"{CARD_SELECTOR} {CARD_HEADER_SELECTOR}")
            count = min(await headers.count(), self.max_entries)
            # The first card is already expanded on load
            for index in range(1, count):
                await headers.nth(index).click()

            html = await page.content()

        return normalize_accu_page(html, self.max_entries)
