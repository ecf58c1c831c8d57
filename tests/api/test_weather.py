"""Tests for the weather report endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from omnitempestas.common.config import Settings, get_settings
from omnitempestas.common.schemas import WeatherSource
from omnitempestas.main import app
from omnitempestas.weather.exceptions import ParseError

TWC = WeatherSource.TheWeatherChannel
NWS = WeatherSource.NationalWeatherService


# ─── GET /api/weather ───


class TestGetWeather:
    @pytest.mark.asyncio
    async def test_returns_cached_report(self, client: AsyncClient, pipeline, make_entry):
        pipeline.cache.set([make_entry(source=TWC, rain_percent=40)])

        resp = await client.get("/api/weather")

        assert resp.status_code == 200
        body = resp.json()
        assert "timestamp" in body
        assert body["entries"][0]["timeHours"] == 13
        assert body["entries"][0]["rainPercent"] == 40
        assert body["entries"][0]["source"] == 0

    @pytest.mark.asyncio
    async def test_empty_cache_triggers_one_refresh(self, client: AsyncClient, pipeline, gated_fetcher):
        fetcher, gate = gated_fetcher
        pipeline.scheduler.fetchers = [fetcher]

        first = await client.get("/api/weather")
        second = await client.get("/api/weather")

        assert first.status_code == 503
        assert first.json() == {"message": "No weather report available, new fetch beginning"}
        assert second.status_code == 503
        assert second.json() == {
            "message": "No weather report available, fetch already in progress"
        }

        gate.set()
        await pipeline.scheduler._triggered_task
        assert fetcher.calls == 1

        third = await client.get("/api/weather")
        assert third.status_code == 200

    @pytest.mark.asyncio
    async def test_empty_cache_while_fetching(self, client: AsyncClient, pipeline):
        with pipeline.state.hold():
            resp = await client.get("/api/weather")

        assert resp.status_code == 503
        assert "already in progress" in resp.json()["message"]
        assert pipeline.scheduler.refresh_pending is False

    @pytest.mark.asyncio
    async def test_no_pipeline_is_503(self, bare_client: AsyncClient):
        resp = await bare_client.get("/api/weather")
        assert resp.status_code == 503


# ─── GET /api/weather/aggregate ───


class TestGetAggregatedWeather:
    @pytest.mark.asyncio
    async def test_blends_all_sources(self, client: AsyncClient, pipeline, make_entry):
        pipeline.cache.set(
            [
                make_entry(source=TWC, temperature=70),
                make_entry(source=WeatherSource.AccuWeather, temperature=73),
                make_entry(source=NWS, temperature=80),
            ]
        )

        resp = await client.get("/api/weather/aggregate")

        assert resp.status_code == 200
        [entry] = resp.json()["entries"]
        assert entry["temperature"] == 74

    @pytest.mark.asyncio
    async def test_source_filter(self, client: AsyncClient, pipeline, make_entry):
        pipeline.cache.set(
            [
                make_entry(source=TWC, temperature=70),
                make_entry(source=WeatherSource.AccuWeather, temperature=90),
                make_entry(source=NWS, temperature=80),
            ]
        )

        resp = await client.get("/api/weather/aggregate", params=[("source", 0), ("source", 2)])

        assert resp.status_code == 200
        [entry] = resp.json()["entries"]
        assert entry["temperature"] == 75

    @pytest.mark.asyncio
    async def test_keeps_report_timestamp(self, client: AsyncClient, pipeline, make_entry):
        report = pipeline.cache.set([make_entry()])
        resp = await client.get("/api/weather/aggregate")
        assert resp.json()["timestamp"].startswith(report.timestamp.strftime("%Y-%m-%dT%H:%M"))

    @pytest.mark.asyncio
    async def test_unknown_source_rejected(self, client: AsyncClient, pipeline, make_entry):
        pipeline.cache.set([make_entry()])
        resp = await client.get("/api/weather/aggregate", params={"source": 7})
        assert resp.status_code == 422


# ─── Development-only raw fetches ───


class TestDevRoutes:
    @pytest.mark.asyncio
    async def test_single_source(self, client: AsyncClient, pipeline):
        resp = await client.get("/api/twc")

        assert resp.status_code == 200
        [entry] = resp.json()
        assert entry["source"] == 0
        assert pipeline.cache.get() is None

    @pytest.mark.asyncio
    async def test_unconfigured_source_returns_empty_list(self, client: AsyncClient):
        resp = await client.get("/api/accu")
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_all_sources(self, client: AsyncClient):
        resp = await client.get("/api/all")
        assert resp.status_code == 200
        assert [e["source"] for e in resp.json()] == [0, 2]

    @pytest.mark.asyncio
    async def test_conflict_while_fetching(self, client: AsyncClient, pipeline):
        with pipeline.state.hold():
            twc = await client.get("/api/nws")
            everything = await client.get("/api/all")

        assert twc.status_code == 409
        assert twc.json()["error"] == "FetchInProgressError"
        assert everything.status_code == 409

    @pytest.mark.asyncio
    async def test_failure_after_retries_is_502(self, client: AsyncClient, pipeline, scripted_fetcher):
        pipeline.fetchers[TWC] = scripted_fetcher(TWC, [ParseError("no cards")])

        resp = await client.get("/api/twc")

        assert resp.status_code == 502
        assert resp.json()["error"] == "ParseError"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/twc", "/api/accu", "/api/nws", "/api/all"])
    async def test_hidden_in_production(self, client: AsyncClient, path):
        app.dependency_overrides[get_settings] = lambda: Settings(environment="production")

        resp = await client.get(path)

        assert resp.status_code == 404
