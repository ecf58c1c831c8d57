"""Fetch-in-progress flag and the retrying fetch guard.

FetchState is the process-wide "an acquisition is in flight" flag. It is
constructed once by the app and injected wherever it is needed. Holds are
scoped: the flag is set on entry and always cleared on exit, whether the
fetch succeeded, exhausted its retries, raised, or was cancelled. Holds
nest, so a refresh cycle can hold the flag across all its sources while
each source's guarded fetch holds it too.

FetchGuard runs one SourceFetcher with a fixed number of attempts and a
fixed wait between them. The wait is an asyncio sleep, so the event loop
keeps serving requests while a source is between attempts.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Iterator
from enum import StrEnum

from omnitempestas.common.logging import get_logger
from omnitempestas.common.metrics import (
    WEATHER_FETCH_ATTEMPTS_TOTAL,
    WEATHER_FETCH_IN_PROGRESS,
    WEATHER_FETCHES_TOTAL,
)
from omnitempestas.common.schemas import WeatherEntry
from omnitempestas.weather.base import SourceFetcher
from omnitempestas.weather.exceptions import FetchInProgressError

logger = get_logger("WEATHER")


class RetryState(StrEnum):
    """Where a source currently is in its retry loop."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    EXHAUSTED = "exhausted"


class FetchState:
    """Process-wide flag: true while any acquisition is in flight."""

    def __init__(self) -> None:
        self._holders = 0

    @property
    def is_fetching(self) -> bool:
        return self._holders > 0

    @contextlib.contextmanager
    def hold(self) -> Iterator[None]:
        """Mark a fetch as in progress for the duration of the block."""
        self._holders += 1
        WEATHER_FETCH_IN_PROGRESS.set(1)
        try:
            yield
        finally:
            self._holders -= 1
            if self._holders == 0:
                WEATHER_FETCH_IN_PROGRESS.set(0)


class FetchGuard:
    """Wraps source fetches with the in-progress flag and a bounded retry loop.

    Args:
        state: The shared FetchState.
        num_retries: Total attempts per fetch (not retries after the first).
        retry_wait_seconds: Fixed delay between a failed attempt and the next.
    """

    def __init__(
        self,
        state: FetchState,
        *,
        num_retries: int = 3,
        retry_wait_seconds: float = 300.0,
    ) -> None:
        self.state = state
        self.num_retries = max(1, num_retries)
        self.retry_wait_seconds = retry_wait_seconds
        self.retry_states: dict[str, RetryState] = {}

    async def run(self, fetcher: SourceFetcher, *, exclusive: bool = False) -> list[WeatherEntry]:
        """Fetch from one source, retrying any failure up to num_retries attempts.

        Args:
            fetcher: The source to fetch.
            exclusive: Refuse to start if another acquisition is in flight
                (used by manual requests so they never start a second
                browser session alongside a scheduled cycle).

        Returns:
            Entries from the first successful attempt.

        Raises:
            SourceUnavailable: The source is not configured (no attempt made).
            FetchInProgressError: exclusive=True and a fetch is in flight.
            Exception: Whatever the final attempt raised.
        """
        fetcher.require_configured()
        if exclusive and self.state.is_fetching:
            raise FetchInProgressError(
                "A weather fetch is already in progress",
                context={"source": fetcher.name},
            )

        name = fetcher.name
        with self.state.hold():
            try:
                for attempt in range(1, self.num_retries + 1):
                    self.retry_states[name] = RetryState.ATTEMPTING
                    try:
                        entries = await fetcher.fetch()
                    except Exception as exc:
                        WEATHER_FETCH_ATTEMPTS_TOTAL.labels(source=name, outcome="error").inc()
                        if attempt >= self.num_retries:
                            self.retry_states[name] = RetryState.EXHAUSTED
                            WEATHER_FETCHES_TOTAL.labels(source=name, outcome="error").inc()
                            logger.error(
                                f"Final attempt {attempt}/{self.num_retries} failed",
                                extra={
                                    "data": {
                                        "source": name,
                                        "error_type": type(exc).__name__,
                                        "error": str(exc),
                                    }
                                },
                            )
                            raise

                        self.retry_states[name] = RetryState.WAITING
                        logger.warning(
                            f"Attempt {attempt}/{self.num_retries} failed, retrying",
                            extra={
                                "data": {
                                    "source": name,
                                    "error_type": type(exc).__name__,
                                    "error": str(exc),
                                    "wait_seconds": self.retry_wait_seconds,
                                }
                            },
                        )
                        await asyncio.sleep(self.retry_wait_seconds)
                        logger.info(f"Retrying {name} fetch")
                        continue

                    WEATHER_FETCH_ATTEMPTS_TOTAL.labels(source=name, outcome="success").inc()
                    WEATHER_FETCHES_TOTAL.labels(source=name, outcome="success").inc()
                    return entries
            finally:
                if self.retry_states.get(name) is not RetryState.EXHAUSTED:
                    self.retry_states[name] = RetryState.IDLE

        raise AssertionError(f"retry loop for {name} ended without a result")
