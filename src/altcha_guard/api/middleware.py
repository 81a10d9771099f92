"""Cross-cutting HTTP middleware applied to every request."""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "*"
FORWARDED_FOR_HEADER = "x-forwarded-for"

access_logger = logging.getLogger("altcha_guard.access")


def client_address(request: Request) -> str:
    """Return the originating address, preferring `X-Forwarded-For`."""
    forwarded = request.headers.get(FORWARDED_FOR_HEADER, "")
    if forwarded.strip():
        # Left-most entry is the original client; proxies append themselves.
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Add CORS headers to all responses and answer OPTIONS directly.

    Starlette's CORSMiddleware is not used because it sets no headers on
    requests without an Origin header and answers preflight with a text body.
    """

    def __init__(self, app: ASGIApp, allow_origin: str = "*") -> None:
        super().__init__(app)
        self.allow_origin = allow_origin

    def _apply(self, response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = self.allow_origin
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        return response

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method == "OPTIONS":
            return self._apply(Response(status_code=200))
        response = await call_next(request)
        return self._apply(response)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client address and duration once a request completes."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        access_logger.info(
            "%s %s from %s - %d - %.2fms",
            request.method,
            request.url.path,
            client_address(request),
            response.status_code,
            duration_ms,
        )
        return response
