"""Weather acquisition pipeline — fetchers, guard, aggregation, cache, scheduler.

Public API:
    - aggregation: cross-source blending of hourly entries
    - cache: the single latest WeatherReport
    - guard: fetch-in-progress flag and retrying fetch guard
    - scheduler: periodic fetch-all-and-cache cycles
    - pipeline: construction of all of the above from Settings
"""

from __future__ import annotations

from omnitempestas.weather.aggregation import aggregate_entries
from omnitempestas.weather.cache import ReportCache
from omnitempestas.weather.exceptions import (
    FetchInProgressError,
    ParseError,
    SourceUnavailable,
    TransientNetworkError,
    WeatherError,
)
from omnitempestas.weather.guard import FetchGuard, FetchState, RetryState
from omnitempestas.weather.pipeline import WeatherPipeline, build_pipeline
from omnitempestas.weather.scheduler import RefreshScheduler

__all__ = [
    "FetchGuard",
    "FetchInProgressError",
    "FetchState",
    "ParseError",
    "RefreshScheduler",
    "ReportCache",
    "RetryState",
    "SourceUnavailable",
    "TransientNetworkError",
    "WeatherError",
    "WeatherPipeline",
    "aggregate_entries",
    "build_pipeline",
]
