"""Cross-source aggregation of hourly entries.

Blends the readings every selected source gives for the same time slot
into one entry:

  1. keep only the selected sources
  2. drop repeated (hours, minutes, source) readings, first one wins
  3. group by (hours, minutes) in one pass
  4. rain_percent, rain_amount, temperature: mean of non-sentinel values;
     a slot where every value is the sentinel keeps the sentinel
  5. sky_status: mean of the enum ordinals, rounded back to the enum
  6. round half up to whole numbers, emit slots in order of first appearance

Sources list their hours chronologically, so first appearance keeps a
forecast that crosses midnight in time order (22, 23, 0, 1).

The `source` on an output entry is the first contributing source and
carries no meaning once values are blended.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field

from omnitempestas.common.schemas import SENTINEL, SkyStatus, WeatherEntry, WeatherSource


def round_half_up(value: float) -> int:
    """Round .5 upward (2.5 -> 3, -1.5 -> -1) rather than to even."""
    return math.floor(value + 0.5)


def mean_excluding_sentinel(values: Iterable[float]) -> float:
    """Average the values that are not SENTINEL; SENTINEL if none are."""
    real = [v for v in values if v != SENTINEL]
    if not real:
        return SENTINEL
    return sum(real) / len(real)


@dataclass
class _SlotAccumulator:
    source: WeatherSource
    rain_percent: list[float] = field(default_factory=list)
    rain_amount: list[float] = field(default_factory=list)
    temperature: list[float] = field(default_factory=list)
    sky_status: list[int] = field(default_factory=list)

    def add(self, entry: WeatherEntry) -> None:
        self.rain_percent.append(entry.rain_percent)
        self.rain_amount.append(entry.rain_amount)
        self.temperature.append(entry.temperature)
        self.sky_status.append(int(entry.sky_status))

    def to_entry(self, hours: int, minutes: int) -> WeatherEntry:
        sky = round_half_up(sum(self.sky_status) / len(self.sky_status))
        return WeatherEntry(
            source=self.source,
            time_hours=hours,
            time_minutes=minutes,
            rain_percent=round_half_up(mean_excluding_sentinel(self.rain_percent)),
            rain_amount=round_half_up(mean_excluding_sentinel(self.rain_amount)),
            temperature=round_half_up(mean_excluding_sentinel(self.temperature)),
            sky_status=SkyStatus(sky),
        )


def aggregate_entries(
    entries: Iterable[WeatherEntry],
    sources: Collection[WeatherSource] | None = None,
) -> list[WeatherEntry]:
    """Blend entries from the selected sources into one entry per time slot.

    Args:
        entries: Raw entries from any number of sources, in any order.
        sources: Sources to include; None includes all of them.

    Returns:
        One entry per distinct (hours, minutes), in order of first appearance.
    """
    seen: set[tuple[int, int, WeatherSource]] = set()
    slots: dict[tuple[int, int], _SlotAccumulator] = {}

    for entry in entries:
        if sources is not None and entry.source not in sources:
            continue

        key = (entry.time_hours, entry.time_minutes, entry.source)
        if key in seen:
            continue
        seen.add(key)

        accumulator = slots.get(entry.slot)
        if accumulator is None:
            accumulator = slots[entry.slot] = _SlotAccumulator(source=entry.source)
        accumulator.add(entry)

    return [accumulator.to_entry(*slot) for slot, accumulator in slots.items()]
