"""
HTTP request metadata for log entries.

Builds the ``httpRequest`` value of a Stackdriver entry from a Starlette
request/response pair, and provides a middleware that logs one entry per
request with it attached.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .constants import KEY_REQUEST
from .types import HttpRequest


def _request_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def format_latency(seconds: float) -> str:
    """Format a duration the way LogEntry.httpRequest.latency expects ("0.123s")."""
    return f"{seconds:.9f}".rstrip("0").rstrip(".") + "s"


def extract_log_info(request: Request, response: Response, latency: Optional[float] = None) -> HttpRequest:
    """Collect the request fields Stackdriver understands.

    Cache lookups are not tracked, so ``cacheLookup`` and ``cacheHit`` are
    always false.
    """
    http_version = request.scope.get("http_version") or "1.1"
    return HttpRequest(
        request_method=request.method,
        request_url=_request_url(request),
        status=response.status_code,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
        remote_ip=request.client.host if request.client else None,
        latency=format_latency(latency) if latency is not None else None,
        cache_lookup=False,
        cache_hit=False,
        protocol=f"HTTP/{http_version}",
    )


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log every request with its ``httpRequest`` metadata.

    Args:
        app: The ASGI application.
        logger: A structlog-style logger; the entry is logged with ``req``
            so the Stackdriver mapper lifts it into ``httpRequest``.
    """

    def __init__(self, app: Any, logger: Any):
        super().__init__(app)
        self._logger = logger

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        info = extract_log_info(request, response, latency=time.perf_counter() - started)
        self._logger.info(f"{request.method} {_request_url(request)}", **{KEY_REQUEST: info})
        return response
