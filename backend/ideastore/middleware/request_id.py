"""
IdeaStore Backend — Request ID Middleware
===========================================

What:  Assigns a correlation ID to each request and returns it to the client.
How:   Reuses the client's X-Request-ID header or generates an 8-character
       ID, stores it in a ContextVar, and echoes it in the response header.
Who:   Applied to every request via Starlette middleware.

The same ID appears in the access log line, in error-handler log lines and
in every error envelope, so a client report can be matched to server logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use X-Request-ID from the client when present
        2. Otherwise generate one (first 8 hex chars of a UUID4)
        3. Store it in request_id_var and request.state.request_id
        4. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
