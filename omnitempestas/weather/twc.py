"""The Weather Channel (weather.com) hour-by-hour page fetcher.

The hourly page renders one collapsed card per hour, tagged with
`data-testid="ExpandedDetailsCard-N"`. Precipitation accumulation only
appears once a card is expanded, so each card within the horizon is
clicked before the page HTML is captured and parsed.
"""

from __future__ import annotations

from omnitempestas.common.schemas import WeatherEntry, WeatherSource
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.browser import BrowserSession, browser_errors, load_page
from omnitempestas.weather.normalizer import normalize_twc_page

CARD_TEST_ID = "ExpandedDetailsCard-{index}"


class TWCFetcher(SourceFetcher):
    """Scrapes the rendered weather.com hourly forecast through the shared browser."""

    source = WeatherSource.TheWeatherChannel

    def __init__(self, url: str, max_entries: int, browser: BrowserSession) -> None:
        super().__init__(url, max_entries)
        self.browser = browser

    async def _fetch(self) -> list[WeatherEntry]:
        async with self.browser.page() as page:
            await load_page(page, self.url, f"[data-testid={CARD_TEST_ID.format(index=0)}]")

            with browser_errors("card expansion", self.url):
                for index in range(self.max_entries):
                    card = page.get_by_test_id(CARD_TEST_ID.format(index=index))
                    if await card.count() == 0:
                        break
                    await card.first.click()

                html = await page.content()

        return normalize_twc_page(html, self.max_entries)
