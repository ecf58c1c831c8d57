"""Fixtures for API tests.

The app's lifespan is not run: each test installs a WeatherPipeline built
from scripted fetchers on app.state, exactly where the lifespan would.
"""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from omnitempestas.common.schemas import WeatherSource
from omnitempestas.main import app
from omnitempestas.weather.browser import BrowserSession
from omnitempestas.weather.cache import ReportCache
from omnitempestas.weather.guard import FetchGuard, FetchState
from omnitempestas.weather.pipeline import WeatherPipeline
from omnitempestas.weather.scheduler import RefreshScheduler

TWC = WeatherSource.TheWeatherChannel
ACCU = WeatherSource.AccuWeather
NWS = WeatherSource.NationalWeatherService


@pytest.fixture
def pipeline(scripted_fetcher, make_entry) -> WeatherPipeline:
    """TWC and NWS return one 1 PM entry each; AccuWeather is unconfigured."""
    state = FetchState()
    guard = FetchGuard(state, num_retries=1, retry_wait_seconds=0)
    fetchers = {
        TWC: scripted_fetcher(TWC, [[make_entry(source=TWC, temperature=70)]]),
        ACCU: scripted_fetcher(ACCU, [[]], url=""),
        NWS: scripted_fetcher(NWS, [[make_entry(source=NWS, temperature=80)]]),
    }
    cache = ReportCache()
    scheduler = RefreshScheduler(list(fetchers.values()), guard, cache)
    return WeatherPipeline(
        state=state,
        guard=guard,
        browser=BrowserSession(),
        fetchers=fetchers,
        cache=cache,
        scheduler=scheduler,
    )


@pytest.fixture
def gated_fetcher(scripted_fetcher, make_entry):
    """A TWC fetcher that blocks until the returned event is set."""
    gate = asyncio.Event()

    class GatedFetcher(scripted_fetcher):
        async def _fetch(self):
            self.calls += 1
            await gate.wait()
            return [make_entry(source=TWC)]

    return GatedFetcher(TWC, [[]]), gate


@pytest_asyncio.fixture
async def client(pipeline) -> AsyncClient:
    """Client against the app with the test pipeline installed."""
    app.state.pipeline = pipeline
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await pipeline.scheduler.stop()
    app.state.pipeline = None
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def bare_client() -> AsyncClient:
    """Client with no pipeline installed, as before the lifespan has run."""
    app.state.pipeline = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
