"""Schemas returned by the challenge, verify and health endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class VerifyResponse(BaseModel):
    """Outcome of a `/verify` call.

    Rejections are reported here rather than as HTTP errors so clients can
    handle every outcome the same way.
    """

    success: bool
    message: str | None = None


class HealthResponse(BaseModel):
    """Process liveness and replay cache occupancy."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    version: str
    uptime_seconds: int = Field(alias="uptimeSeconds")
    cache_usage: int = Field(alias="cacheUsage")
    cache_backend: str = Field(alias="cacheBackend")
    replay_detection_enabled: bool = Field(alias="replayDetectionEnabled")
    thread_count: int = Field(alias="threadCount")
    max_rss_kb: int = Field(alias="maxRssKb")
    pid: int
