"""Prometheus metrics definitions for Omnitempestas.

All metric objects are centralized here as module-level singletons.
Import what you need from anywhere in the codebase:

    from omnitempestas.common.metrics import WEATHER_FETCHES_TOTAL

The /metrics endpoint is mounted in omnitempestas/main.py via
prometheus_client.make_asgi_app().
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

# ─── App Info ───

APP_INFO = Info("app", "Application metadata")

# ─── HTTP Metrics ───

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ─── Weather Fetch Metrics ───

WEATHER_FETCHES_TOTAL = Counter(
    "weather_fetches_total",
    "Guarded weather fetch outcomes per source",
    labelnames=["source", "outcome"],
)

WEATHER_FETCH_ATTEMPTS_TOTAL = Counter(
    "weather_fetch_attempts_total",
    "Individual fetch attempts (including retries) per source",
    labelnames=["source", "outcome"],
)

WEATHER_FETCH_IN_PROGRESS = Gauge(
    "weather_fetch_in_progress",
    "1 while any weather acquisition is in flight, else 0",
)

# ─── Refresh Cycle Metrics ───

REFRESH_CYCLES_TOTAL = Counter(
    "refresh_cycles_total",
    "Refresh cycle outcomes",
    labelnames=["outcome"],
)

REFRESH_CYCLE_DURATION_SECONDS = Histogram(
    "refresh_cycle_duration_seconds",
    "Duration of a full fetch-all-sources cycle",
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 900.0, 1800.0),
)

CACHED_REPORT_ENTRIES = Gauge(
    "cached_report_entries",
    "Number of raw entries in the cached weather report",
)


def set_app_info(version: str, environment: str) -> None:
    """Set the app_info metric values. Called once at startup."""
    APP_INFO.info({"version": version, "environment": environment})
