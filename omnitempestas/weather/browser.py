"""Playwright browser session shared by the rendered-page fetchers.

One Chromium browser, context, and page are launched lazily on first use
and reused across cycles. The page is an exclusively-owned resource:
`async with session.page() as page:` holds an asyncio.Lock for the whole
of one source's fetch, so two fetchers never drive it at the same time.

The session is constructed by the app lifespan and closed there on
shutdown (including error exits), never as an ambient global.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import AsyncIterator, Iterator

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from omnitempestas.common.logging import get_logger
from omnitempestas.weather.exceptions import ParseError, TransientNetworkError

logger = get_logger("BROWSER")

# Images are never parsed; skipping them keeps page loads fast
_IMAGE_PATTERN = re.compile(r"(\.png$)|(\.jpg$)|(\.jpeg$)|(\.webp$)")


async def _abort_route(route: Route) -> None:
    await route.abort()


class BrowserSession:
    """Lazily-launched Playwright browser with a single serialized page.

    Args:
        headless: Run Chromium without a window (production).
        timeout_ms: Default timeout for navigation and selector waits.
    """

    def __init__(self, *, headless: bool = True, timeout_ms: int = 30_000) -> None:
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return (
            self._browser is not None
            and self._browser.is_connected()
            and self._context is not None
            and self._page is not None
        )

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    async def launch(self) -> None:
        """Launch browser, context, and page unless already connected."""
        if self.is_loaded:
            return

        # A disconnected browser leaves stale handles behind
        await self._release()

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(
            **self._playwright.devices["Desktop Chrome"]
        )
        self._context.set_default_timeout(self.timeout_ms)
        await self._context.route(_IMAGE_PATTERN, _abort_route)
        self._page = await self._context.new_page()

        logger.info(
            "Browser launched and page created",
            extra={"data": {"headless": self.headless}},
        )

    @contextlib.asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Exclusive access to the shared page for the duration of one fetch."""
        async with self._lock:
            with browser_errors("launch"):
                await self.launch()
            yield self._page

    async def close(self) -> None:
        """Close page, context, browser, and the Playwright driver."""
        await self._release()
        logger.info("Browser session closed")

    async def _release(self) -> None:
        for handle in (self._page, self._context, self._browser):
            if handle is not None:
                with contextlib.suppress(PlaywrightError):
                    await handle.close()
        if self._playwright is not None:
            with contextlib.suppress(PlaywrightError):
                await self._playwright.stop()
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None


@contextlib.contextmanager
def browser_errors(action: str, url: str | None = None) -> Iterator[None]:
    """Translate Playwright failures into TransientNetworkError."""
    try:
        yield
    except PlaywrightError as exc:
        raise TransientNetworkError(
            f"Browser {action} failed: {exc}",
            context={"url": url} if url else None,
        ) from exc


async def load_page(page: Page, url: str, ready_selector: str) -> None:
    """Navigate to url and wait for the element that marks the page as parsed-ready.

    Raises:
        TransientNetworkError: If navigation fails.
        ParseError: If the ready selector never appears (layout changed or
            the page did not render).
    """
    with browser_errors("navigation", url):
        await page.goto(url)

    try:
        await page.wait_for_selector(ready_selector)
    except PlaywrightTimeoutError as exc:
        raise ParseError(
            f"Timed out waiting for {ready_selector}",
            context={"url": url},
        ) from exc
    except PlaywrightError as exc:
        raise TransientNetworkError(
            f"Browser wait failed: {exc}",
            context={"url": url},
        ) from exc
