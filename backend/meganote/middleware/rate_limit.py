"""
Meganote Backend - Login Rate Limiting Middleware
==================================================

What:  Per-IP sliding window limiter guarding the login endpoint.
How:   Tracks attempt timestamps per IP in memory. Only requests whose
       (method, path) appear in LIMITED_ROUTES are counted.
When:  After request id and logging, before any handler; rejected attempts
       never reach the credential check.

Algorithm: Sliding Window Counter
    1. Each IP gets a list of attempt timestamps
    2. On each attempt, drop timestamps older than the window
    3. If remaining count >= limit, reject with 429
    4. Otherwise, record the current timestamp and let it through

Defaults: 5 attempts per 60 seconds (LOGIN_RATE_LIMIT_REQUESTS / _WINDOW).

The state is per process. A multi-worker deployment gets one window per
worker.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from meganote.config import settings
from meganote.event_log import ERROR_LOG, log_events
from meganote.exceptions import RateLimitExceededError
from meganote.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter for login attempts.

    Response on rate limit:
        HTTP 429 Too Many Requests
        Retry-After header: seconds until the oldest attempt leaves the window
        Body: {"error": "rate_limit_exceeded", "message": ..., "details": {...}}
    """

    LIMITED_ROUTES = {("POST", "/auth")}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)

    def reset(self) -> None:
        self._requests.clear()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if (request.method, path) not in self.LIMITED_ROUTES:
            return await call_next(request)

        # Behind a proxy this is the proxy's address
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        window = settings.login_rate_limit_window
        now = time.time()
        window_start = now - window

        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        if len(self._requests[client_ip]) >= settings.login_rate_limit_requests:
            oldest = self._requests[client_ip][0]
            retry_after = int(oldest + window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)

            logger.warning(
                "Login rate limit exceeded for IP %s: %d attempts in %ds window",
                client_ip,
                len(self._requests[client_ip]),
                window,
            )
            await log_events(
                f"Too Many Requests: {exc.message}\t{request.method}\t{request.url}\t"
                f"{request.headers.get('origin')}",
                ERROR_LOG,
            )

            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": exc.message,
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        self._requests[client_ip].append(now)

        # Drop IPs with no attempts left in the window every 1000th attempt
        if sum(len(v) for v in self._requests.values()) % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
