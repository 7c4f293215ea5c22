"""System endpoints for health checks and status."""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from timeflow import __version__
from timeflow.api.auth import verify_token
from timeflow.api.dependencies import get_config, get_controller
from timeflow.api.models import HealthResponse, StatusResponse
from timeflow.core.config import ConfigManager
from timeflow.core.timer import TimerController

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Note:
        This endpoint is public (no authentication required).

    Example:
        >>> GET /api/v1/health
        {
            "status": "healthy",
            "timestamp": "2026-10-19T10:30:00Z",
            "version": "0.4.0"
        }
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    config: ConfigManager = Depends(get_config),
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> StatusResponse:
    """Get server and timer status."""
    return StatusResponse(
        api_enabled=config.get("api.enabled", False),
        authentication_enabled=config.get("api.authentication.enabled", True),
        cors_enabled=config.get("api.cors.enabled", True),
        timer_status=controller.status.value,
        structured_store=controller.store.structured_available,
        uptime_seconds=time.time() - _server_start_time,
    )
