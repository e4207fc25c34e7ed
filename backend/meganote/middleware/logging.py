"""
Meganote Backend - Request Logging Middleware
==============================================

What:  Logs every HTTP request twice: a structured line on the process
       logger (method, path, status, duration) and a tab-separated line in
       the append-only reqLog.log file (method, url, origin).
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware, so both lines carry the correlation id.

Not logged: request bodies (passwords, reset secrets) and Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from meganote.event_log import REQUEST_LOG, log_events
from meganote.middleware.request_id import request_id_var

logger = logging.getLogger("meganote.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Log level follows the status code: 5xx → ERROR, 4xx → WARNING, else INFO.
    Health checks are skipped.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        if path == "/health":
            return await call_next(request)

        origin = request.headers.get("origin")
        await log_events(f"{method}\t{request.url}\t{origin}", REQUEST_LOG)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
