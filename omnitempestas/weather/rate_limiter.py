"""Request spacing for the NWS API.

NWS asks clients to stay at or below one request per second. The pipeline
builds one limiter from `nws_rate_limit_per_second` and hands it to the
NWS fetcher, which awaits `acquire()` before every request.
"""

from __future__ import annotations

import asyncio
import time

from omnitempestas.common.logging import get_logger

logger = get_logger("WEATHER")


class RateLimiter:
    """Keeps successive calls at least `interval` seconds apart.

    Callers queue on an asyncio.Lock, so waiting callers are released one
    slot at a time within a single event loop.

    Args:
        calls_per_second: Sustained call rate. Must be positive.
    """

    def __init__(self, calls_per_second: float = 1.0) -> None:
        if calls_per_second <= 0:
            raise ValueError(f"calls_per_second must be positive, got {calls_per_second}")
        self.interval = 1.0 / calls_per_second
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Sleep until the next slot opens, then claim it."""
        async with self._lock:
            delay = self._next_slot - time.monotonic()
            if delay > 0:
                logger.debug("Spacing NWS request", extra={"data": {"delay_seconds": delay}})
                await asyncio.sleep(delay)
            self._next_slot = time.monotonic() + self.interval
