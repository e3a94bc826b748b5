"""
IdeaStore Backend — Request Logging Middleware
================================================

What:  One access log line per HTTP request.
How:   Times the rest of the middleware chain and logs method, path, status,
       duration, declared body size, request ID and client IP.
Who:   Applied to every request via Starlette middleware.
When:  Inside RequestIDMiddleware, so the request ID is already set.

Example line:
    PUT /update/12 200 412.3ms in=1834B [1a2b3c4d] from 10.0.0.7

Request bodies are never logged, only their Content-Length: they are the
users' notes.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ideastore.middleware.request_id import request_id_var

logger = logging.getLogger("ideastore.access")


def level_for_status(status: int) -> int:
    """5xx → ERROR, 4xx → WARNING, everything else → INFO"""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def declared_length(request: Request) -> int:
    """Content-Length of the request, 0 when absent or malformed."""
    value = request.headers.get("content-length", "")
    return int(value) if value.isdigit() else 0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        - GET /entries: 5-50ms (one query)
        - POST /save, PUT /update: 300-1500ms (Drive upload dominates)
        - GET /load/{id}: 200-800ms (Drive download)
    """

    # Probed every few seconds by the platform
    SKIPPED_PATHS = frozenset({"/health"})

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        rid = request_id_var.get("")
        fields = {
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "body_bytes": declared_length(request),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            level_for_status(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms in=%(body_bytes)dB "
            "[%(request_id)s] from %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
