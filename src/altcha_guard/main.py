# src/altcha_guard/main.py
"""Main entry point for the ALTCHA Guard service."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from altcha_guard.api.endpoints import captcha_router, system_router
from altcha_guard.api.middleware import AccessLogMiddleware, CorsHeadersMiddleware
from altcha_guard.core.errors import ClientError, FatalError, UpstreamError
from altcha_guard.core.settings import Settings, get_settings
from altcha_guard.services.altcha import (
    AltchaChallengeProvider,
    AltchaSolutionVerifier,
    ChallengeProvider,
    SolutionVerifier,
)
from altcha_guard.services.replay import ReplayCache, build_replay_cache
from altcha_guard.services.sweeper import CacheSweeper
from altcha_guard.services.verification import VerificationService

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the replay cache sweeper for the lifetime of the app."""
    settings: Settings = app.state.settings
    sweeper: CacheSweeper = app.state.sweeper

    logger.info(
        "Starting %s v%s (cache=%s, replay detection %s)",
        settings.app_name,
        settings.app_version,
        settings.cache_backend,
        "enabled" if settings.replay_detection_enabled else "disabled",
    )
    if settings.uses_default_hmac_key:
        logger.warning("ALTCHA_HMAC_KEY is not set; using the insecure default key.")
    if settings.cors_origin == "*":
        logger.warning("CORS allows all origins. Set CORS_ORIGIN to restrict it.")

    if settings.replay_detection_enabled:
        await sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("Shutting down...")


async def _client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(
    settings: Settings | None = None,
    *,
    cache: ReplayCache | None = None,
    provider: ChallengeProvider | None = None,
    verifier: SolutionVerifier | None = None,
) -> FastAPI:
    """Build the FastAPI application and its shared components.

    Args:
        settings: Configuration to use; defaults to the environment settings.
        cache: Replay cache to use instead of the configured backend.
        provider: Challenge provider to use instead of the ALTCHA library.
        verifier: Solution verifier to use instead of the ALTCHA library.

    Returns:
        A configured application with components attached to `app.state`.

    Raises:
        CacheBackendError: If the configured cache backend cannot be built.
    """
    settings = settings or get_settings()
    cache = cache if cache is not None else build_replay_cache(settings)

    service = VerificationService(
        cache,
        provider or AltchaChallengeProvider(),
        verifier or AltchaSolutionVerifier(),
        hmac_key=settings.altcha_hmac_key,
        max_number=settings.altcha_max_number,
        ttl_seconds=settings.ttl_seconds,
        replay_detection_enabled=settings.replay_detection_enabled,
    )

    app = FastAPI(
        title=settings.app_name,
        description="Proof-of-work CAPTCHA verification with replay protection",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.replay_cache = cache
    app.state.verification_service = service
    app.state.sweeper = CacheSweeper(cache, settings.cache_sweep_interval_seconds)
    app.state.started_at = time.monotonic()

    # Added last runs first: access log wraps CORS wraps the routes.
    app.add_middleware(CorsHeadersMiddleware, allow_origin=settings.cors_origin)
    app.add_middleware(AccessLogMiddleware)

    app.add_exception_handler(ClientError, _client_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(UpstreamError, _upstream_error_handler)  # type: ignore[arg-type]

    app.include_router(captcha_router)
    app.include_router(system_router)
    return app


def main(argv: Sequence[str] | None = None) -> None:
    """Run the server; exits with status 1 if startup resources are unusable.

    The ASGI app is only built here, or by `uvicorn altcha_guard.main:create_app
    --factory`, so configuration errors surface as a logged failure.
    """
    parser = argparse.ArgumentParser(description="ALTCHA proof-of-work verification server.")
    parser.add_argument("--host", default=None, help="Interface to listen on (HOST).")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (PORT).")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level, DEBUG, INFO, WARNING, ... (LOG_LEVEL).",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    log_level = (args.log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    try:
        settings = get_settings()
        application = create_app(settings)
    except (ValidationError, FatalError) as exc:
        logger.critical("Failed to initialize: %s", exc)
        sys.exit(1)

    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port

    import uvicorn

    logger.info("ALTCHA server is running on %s:%s", host, port)
    uvicorn.run(application, host=host, port=port, log_level=log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    main()
