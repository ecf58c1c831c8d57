"""FastAPI application factory for Omnitempestas.

Run with: uvicorn omnitempestas.main:app

The lifespan owns the weather pipeline: it is built and started once the
app is up, and on shutdown (signal or crash) the scheduler is stopped and
the browser session released.
"""

from __future__ import annotations

import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app as make_metrics_app

from omnitempestas import __version__
from omnitempestas.api.weather import router as weather_router
from omnitempestas.common.config import get_settings
from omnitempestas.common.logging import get_logger
from omnitempestas.common.metrics import set_app_info
from omnitempestas.common.middleware import (
    PrometheusMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    request_id_var,
)
from omnitempestas.weather.exceptions import FetchInProgressError, WeatherError
from omnitempestas.weather.pipeline import build_pipeline

logger = get_logger("SYSTEM")


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Build and start the weather pipeline; tear it down on exit."""
    settings = get_settings()
    pipeline = build_pipeline(settings)
    application.state.pipeline = pipeline
    pipeline.start()

    try:
        yield
    finally:
        logger.info("Exiting gracefully")
        await pipeline.aclose()
        application.state.pipeline = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Omnitempestas",
        version=__version__,
        description="Hourly forecasts from several weather providers, side by side",
        lifespan=lifespan,
    )

    # The development frontend runs on its own port
    if not settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    # Last added = outermost = runs first on request
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ─── Exception Handlers ───

    @app.exception_handler(FetchInProgressError)
    async def fetch_in_progress_handler(
        request: Request, exc: FetchInProgressError
    ) -> JSONResponse:
        """A manual fetch overlapped a running one: tell the caller, start nothing."""
        logger.info(
            "Rejected overlapping fetch",
            extra={"data": {"path": str(request.url)}},
        )
        return JSONResponse(
            status_code=409,
            content={"error": "FetchInProgressError", "message": str(exc)},
        )

    @app.exception_handler(WeatherError)
    async def weather_error_handler(request: Request, exc: WeatherError) -> JSONResponse:
        """Source failures that outlived every retry surface as 502 (bad gateway)."""
        logger.error(
            f"{type(exc).__name__}: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return JSONResponse(
            status_code=502,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — log traceback, return 500."""
        rid = request_id_var.get("")
        logger.error(
            f"Unhandled {type(exc).__name__}: {exc}",
            extra={
                "data": {
                    "path": str(request.url),
                    "request_id": rid,
                    "traceback": traceback.format_exc(),
                }
            },
        )
        body: dict = {
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
        }
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=500, content=body)

    # ─── Health ───

    @app.get("/health")
    async def health_check(request: Request) -> dict:
        """Liveness probe with cache freshness."""
        pipeline = getattr(request.app.state, "pipeline", None)
        age = pipeline.cache.age_seconds() if pipeline is not None else None
        return {
            "status": "ok",
            "version": __version__,
            "report_age_seconds": round(age, 1) if age is not None else None,
            "fetch_in_progress": pipeline.state.is_fetching if pipeline is not None else False,
        }

    # ─── Prometheus Metrics ───

    app.mount("/metrics", make_metrics_app())
    set_app_info(version=__version__, environment=settings.environment)

    # ─── Router Mounting ───

    app.include_router(weather_router, prefix="/api", tags=["weather"])

    logger.info(
        "App started",
        extra={"data": {"version": __version__, "environment": settings.environment}},
    )

    return app


app = create_app()
