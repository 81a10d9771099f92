"""Liveness and service information endpoints."""

from __future__ import annotations

import os
import resource
import threading
import time

from fastapi import APIRouter, Request

from altcha_guard.api.dependencies import ReplayCacheDep, SettingsDep
from altcha_guard.schemas.captcha import HealthResponse

router = APIRouter(tags=["system"])


def _max_rss_kb() -> int:
    # ru_maxrss is kilobytes on Linux.
    return int(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request, settings: SettingsDep, cache: ReplayCacheDep
) -> HealthResponse:
    """Report process status, uptime and replay cache occupancy.

    Args:
        request: Incoming request, used to read the app start time.
        settings: Settings the app was created with.
        cache: Replay cache owned by the app.

    Returns:
        A `HealthResponse`; never touches the verification path.
    """
    started_at: float = request.app.state.started_at
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        uptime_seconds=int(time.monotonic() - started_at),
        cache_usage=len(cache),
        cache_backend=cache.backend,
        replay_detection_enabled=settings.replay_detection_enabled,
        thread_count=threading.active_count(),
        max_rss_kb=_max_rss_kb(),
        pid=os.getpid(),
    )


@router.get("/")
async def root(settings: SettingsDep) -> dict[str, str]:
    """Root endpoint with basic information about the service."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "challenge": "/challenge",
        "verify": "/verify",
        "health": "/health",
    }
