"""Refresh scheduler: fetch every source and replace the cached report.

A cycle runs once at startup and then on a fixed period, regardless of
how the previous cycle ended. Each source is fetched sequentially under
its own FetchGuard (they share one browser page), and the raw entries of
every source that succeeded are concatenated into the cache. Aggregation
is left to each consumer.

Per-cycle error policy:
  - SourceUnavailable:        warning, source skipped
  - failure after retries:    error logged, source contributes nothing
  - every attempted source failed: cache keeps the previous report

Nothing here stops the loop; only `stop()` (app shutdown) does.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from omnitempestas.common.logging import get_logger
from omnitempestas.common.metrics import (
    REFRESH_CYCLE_DURATION_SECONDS,
    REFRESH_CYCLES_TOTAL,
    WEATHER_FETCHES_TOTAL,
)
from omnitempestas.common.schemas import WeatherEntry, WeatherReport
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.cache import ReportCache
from omnitempestas.weather.exceptions import FetchInProgressError, SourceUnavailable
from omnitempestas.weather.guard import FetchGuard

logger = get_logger("SCHEDULER")


@dataclass
class FetchOutcome:
    """Entries plus which sources succeeded, failed, or were skipped."""

    entries: list[WeatherEntry] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and not self.succeeded


class RefreshScheduler:
    """Drives fetch-all-and-cache cycles on a fixed period.

    Args:
        fetchers: Sources in fetch order.
        guard: Retrying guard (owns the shared FetchState).
        cache: Report cache to replace after each cycle.
        period_seconds: Interval between cycle starts.
    """

    def __init__(
        self,
        fetchers: Sequence[SourceFetcher],
        guard: FetchGuard,
        cache: ReportCache,
        *,
        period_seconds: float = 3600.0,
    ) -> None:
        self.fetchers = list(fetchers)
        self.guard = guard
        self.cache = cache
        self.period_seconds = period_seconds
        self._loop_task: asyncio.Task | None = None
        self._triggered_task: asyncio.Task | None = None

    # ─── State ───

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def refresh_pending(self) -> bool:
        return self._triggered_task is not None and not self._triggered_task.done()

    # ─── Fetching ───

    async def fetch_sources(self) -> FetchOutcome:
        """Fetch every source in order through the guard, isolating failures."""
        outcome = FetchOutcome()

        for fetcher in self.fetchers:
            try:
                entries = await self.guard.run(fetcher)
            except SourceUnavailable as exc:
                WEATHER_FETCHES_TOTAL.labels(source=fetcher.name, outcome="skipped").inc()
                logger.warning(str(exc), extra={"data": {"source": fetcher.name}})
                outcome.skipped.append(fetcher.name)
                continue
            except Exception as exc:
                logger.error(
                    f"{fetcher.name} contributed no entries this cycle",
                    extra={"data": {"source": fetcher.name, "error": str(exc)}},
                )
                outcome.failed.append(fetcher.name)
                continue

            outcome.entries.extend(entries)
            outcome.succeeded.append(fetcher.name)

        return outcome

    async def fetch_all(self, *, exclusive: bool = False) -> list[WeatherEntry]:
        """Fetch every source without touching the cache.

        Raises:
            FetchInProgressError: exclusive=True and a fetch is in flight.
        """
        if exclusive and self.guard.state.is_fetching:
            raise FetchInProgressError("A weather fetch is already in progress")
        with self.guard.state.hold():
            outcome = await self.fetch_sources()
        return outcome.entries

    async def run_cycle(self) -> WeatherReport | None:
        """Run one fetch-all cycle and update the cache.

        Returns:
            The new report, or None if the cycle was skipped or every
            attempted source failed.
        """
        if self.guard.state.is_fetching:
            REFRESH_CYCLES_TOTAL.labels(outcome="skipped").inc()
            logger.warning("Fetch already in progress, skipping refresh cycle")
            return None

        start = time.monotonic()
        logger.info(
            "Refresh cycle fetching all weather data",
            extra={"data": {"sources": [f.name for f in self.fetchers]}},
        )

        with self.guard.state.hold():
            outcome = await self.fetch_sources()

        elapsed = time.monotonic() - start
        REFRESH_CYCLE_DURATION_SECONDS.observe(elapsed)
        summary = {
            "succeeded": outcome.succeeded,
            "failed": outcome.failed,
            "skipped": outcome.skipped,
            "entries": len(outcome.entries),
            "elapsed_seconds": round(elapsed, 1),
        }

        if outcome.all_failed:
            REFRESH_CYCLES_TOTAL.labels(outcome="failed").inc()
            logger.error(
                "Every source failed, keeping previous report",
                extra={"data": summary},
            )
            return None

        report = self.cache.set(outcome.entries)
        REFRESH_CYCLES_TOTAL.labels(
            outcome="partial" if outcome.failed else "success",
        ).inc()
        logger.info("Refresh cycle completed", extra={"data": summary})
        return report

    # ─── Background Loop ───

    def start(self) -> None:
        """Start the periodic loop; the first cycle runs immediately."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run_forever(), name="weather-refresh")
        logger.info(
            "Refresh scheduler started",
            extra={"data": {"period_seconds": self.period_seconds}},
        )

    def trigger_refresh(self) -> bool:
        """Start one out-of-band cycle unless one is pending or a fetch is in flight.

        Synchronous, so two back-to-back calls start exactly one cycle.

        Returns:
            True if a new cycle was started.
        """
        if self.refresh_pending or self.guard.state.is_fetching:
            return False
        self._triggered_task = asyncio.create_task(
            self._run_cycle_logged(), name="weather-refresh-triggered"
        )
        logger.info("Out-of-band refresh cycle triggered")
        return True

    async def stop(self) -> None:
        """Cancel the loop and any triggered cycle, waiting for them to unwind."""
        tasks = [t for t in (self._loop_task, self._triggered_task) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._loop_task = None
        self._triggered_task = None
        logger.info("Refresh scheduler stopped")

    async def _run_cycle_logged(self) -> None:
        try:
            await self.run_cycle()
        except Exception as exc:
            REFRESH_CYCLES_TOTAL.labels(outcome="error").inc()
            logger.error(
                "Refresh cycle raised",
                extra={"data": {"error_type": type(exc).__name__, "error": str(exc)}},
                exc_info=True,
            )

    async def _run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_start = loop.time()
        while True:
            await self._run_cycle_logged()

            # Fixed rate: ticks missed by an overlong cycle are dropped
            next_start += self.period_seconds
            now = loop.time()
            while next_start <= now:
                next_start += self.period_seconds
            await asyncio.sleep(next_start - now)
