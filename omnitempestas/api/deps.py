"""FastAPI dependencies for the weather endpoints."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from omnitempestas.common.config import Settings, get_settings
from omnitempestas.common.logging import get_logger
from omnitempestas.weather.pipeline import WeatherPipeline

logger = get_logger("API")


def get_pipeline(request: Request) -> WeatherPipeline:
    """Return the pipeline the lifespan stored on app.state.

    Raises:
        HTTPException: 503 if the app has not finished starting.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Weather pipeline is not running")
    return pipeline


def require_development(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Hide debug routes in production by answering 404."""
    if settings.is_production:
        logger.debug(
            f"Rejecting call to {request.url.path} because environment is production",
        )
        raise HTTPException(status_code=404, detail="Not Found")
