"""In-memory holder for the latest weather report.

Only the most recent report is kept; nothing is persisted and the cache
starts empty after a restart. `set()` builds a complete immutable
WeatherReport and swaps it in with a single reference assignment, so a
reader sees either the previous report or the new one, never a mix.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from omnitempestas.common.logging import get_logger
from omnitempestas.common.metrics import CACHED_REPORT_ENTRIES
from omnitempestas.common.schemas import WeatherEntry, WeatherReport

logger = get_logger("CACHE")


class ReportCache:
    """Holds the single current WeatherReport (or None before the first cycle)."""

    def __init__(self) -> None:
        self._report: WeatherReport | None = None

    def get(self) -> WeatherReport | None:
        return self._report

    def set(self, entries: Iterable[WeatherEntry]) -> WeatherReport:
        """Stamp entries with the current time and replace the cached report."""
        report = WeatherReport(entries=tuple(entries), timestamp=datetime.now(UTC))
        self._report = report

        CACHED_REPORT_ENTRIES.set(len(report.entries))
        logger.info(
            "Weather report replaced",
            extra={
                "data": {
                    "entries": len(report.entries),
                    "timestamp": report.timestamp.isoformat(),
                }
            },
        )
        return report

    def age_seconds(self) -> float | None:
        """Seconds since the current report was captured, None when empty."""
        if self._report is None:
            return None
        return (datetime.now(UTC) - self._report.timestamp).total_seconds()
