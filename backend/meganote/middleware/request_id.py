"""
Meganote Backend - Request ID Middleware
=========================================

What:  Assigns a correlation id to each incoming request and echoes it back.
How:   Reads X-Request-ID (or generates a short UUID), stores it in a
       ContextVar and request.state, returns it in the response header.
Who:   Applied to every request via Starlette middleware.

The same id is written into every log line of the request, including the
append-only reqLog.log / errLog.log files, and into error envelopes.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the client's X-Request-ID header when present
        2. Otherwise generate an 8-character id
        3. Store in ContextVar for loggers and in request.state for handlers
        4. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid

        return response
