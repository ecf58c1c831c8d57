"""Weather report endpoints.

`GET /api/weather` serves the cached raw report. When the cache is still
empty it answers 503 and makes sure exactly one refresh is on its way.

`GET /api/weather/aggregate` serves the same report blended per time slot
for an optional subset of sources.

`/api/twc`, `/api/accu`, `/api/nws`, `/api/all` are development-only: they
bypass the cache, run guarded fetches, and return raw entries. They answer
409 rather than start a second fetch while one is already running.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from omnitempestas.api.deps import get_pipeline, require_development
from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import (
    StatusMessage,
    WeatherEntry,
    WeatherReport,
    WeatherSource,
)
from omnitempestas.weather.aggregation import aggregate_entries
from omnitempestas.weather.exceptions import SourceUnavailable
from omnitempestas.weather.pipeline import WeatherPipeline

logger = get_logger("API")

router = APIRouter()

_NOT_READY_RESPONSES = {503: {"model": StatusMessage}}


def _not_ready(pipeline: WeatherPipeline) -> JSONResponse:
    """503 body for an empty cache, triggering a refresh if none is running."""
    if pipeline.scheduler.trigger_refresh():
        message = "No weather report available, new fetch beginning"
    else:
        message = "No weather report available, fetch already in progress"
    logger.info(message)
    return JSONResponse(status_code=503, content={"message": message})


@router.get("/weather", response_model=WeatherReport, responses=_NOT_READY_RESPONSES)
async def get_weather(
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> WeatherReport | JSONResponse:
    """Return the latest raw report from every source."""
    report = pipeline.cache.get()
    if report is None:
        return _not_ready(pipeline)
    return report


@router.get(
    "/weather/aggregate",
    response_model=WeatherReport,
    responses=_NOT_READY_RESPONSES,
)
async def get_aggregated_weather(
    source: Annotated[list[WeatherSource] | None, Query()] = None,
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> WeatherReport | JSONResponse:
    """Return the latest report blended to one entry per time slot.

    Args:
        source: Sources to include (repeatable, e.g. ?source=0&source=2).
            All sources when omitted.
        pipeline: The running weather pipeline.
    """
    report = pipeline.cache.get()
    if report is None:
        return _not_ready(pipeline)
    return WeatherReport(
        entries=tuple(aggregate_entries(report.entries, source)),
        timestamp=report.timestamp,
    )


# ─── Development-Only Raw Fetches ───


async def _force_fetch(pipeline: WeatherPipeline, source: WeatherSource) -> list[WeatherEntry]:
    fetcher = pipeline.fetchers[source]
    try:
        return await pipeline.guard.run(fetcher, exclusive=True)
    except SourceUnavailable as exc:
        logger.warning(str(exc), extra={"data": {"source": fetcher.name}})
        return []


@router.get(
    "/twc",
    response_model=list[WeatherEntry],
    dependencies=[Depends(require_development)],
)
async def fetch_twc(pipeline: WeatherPipeline = Depends(get_pipeline)) -> list[WeatherEntry]:
    return await _force_fetch(pipeline, WeatherSource.TheWeatherChannel)


@router.get(
    "/accu",
    response_model=list[WeatherEntry],
    dependencies=[Depends(require_development)],
)
async def fetch_accu(pipeline: WeatherPipeline = Depends(get_pipeline)) -> list[WeatherEntry]:
    return await _force_fetch(pipeline, WeatherSource.AccuWeather)


@router.get(
    "/nws",
    response_model=list[WeatherEntry],
    dependencies=[Depends(require_development)],
)
async def fetch_nws(pipeline: WeatherPipeline = Depends(get_pipeline)) -> list[WeatherEntry]:
    return await _force_fetch(pipeline, WeatherSource.NationalWeatherService)


@router.get(
    "/all",
    response_model=list[WeatherEntry],
    dependencies=[Depends(require_development)],
)
async def fetch_all(pipeline: WeatherPipeline = Depends(get_pipeline)) -> list[WeatherEntry]:
    return await pipeline.scheduler.fetch_all(exclusive=True)
