"""Weather acquisition exceptions with structured context.

All fetch failures are subclasses of WeatherError. Each exception carries
an optional context dict for debugging, with automatic filtering of keys
that look like they might contain secrets.

Retry policy (see omnitempestas.weather.guard):
  - SourceUnavailable raised before the first attempt -> source skipped, no retry
  - everything else (including a mid-fetch SourceUnavailable) -> retried
"""

from __future__ import annotations

_SECRET_WORDS = {"key", "secret", "password", "token", "private", "credential"}


class WeatherError(Exception):
    """Base exception for all weather acquisition errors.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured data for logging/debugging.
    """

    def __init__(self, message: str, context: dict | None = None) -> None:
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.context:
            safe_ctx = {
                k: "[REDACTED]" if any(w in k.lower() for w in _SECRET_WORDS) else v
                for k, v in self.context.items()
            }
            return f"{base} | context={safe_ctx}"
        return base


class SourceUnavailable(WeatherError):
    """The source's URL/endpoint is not configured. Callers skip the source."""


class ParseError(WeatherError):
    """Expected page structure or JSON shape is absent or malformed."""


class TransientNetworkError(WeatherError):
    """Connectivity problem, HTTP error status, or browser timeout."""


class FetchInProgressError(WeatherError):
    """An exclusive fetch was requested while another acquisition is running."""
