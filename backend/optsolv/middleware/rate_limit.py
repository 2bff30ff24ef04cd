"""
OptSolv Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
Why:   Every OCR and classification call spends Gemini quota; one client
       hammering /api/pipeline would exhaust it for everyone.
How:   Keeps the request timestamps of each IP inside the window. A request
       arriving when the window is full is answered with 429 and a
       Retry-After header in the standard error envelope.

Algorithm: Sliding Window Log
    1. Drop timestamps older than now - window
    2. If remaining count >= limit → reject
    3. Otherwise record now and continue

State is in-process: with several uvicorn workers each worker enforces its
own limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from optsolv.config import settings
from optsolv.exceptions import RateLimitExceededError
from optsolv.responses import error_response

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings):
        rate_limit_requests: Max requests per window per IP
        rate_limit_window:   Window length in seconds

    Stored blobs (/api/files/...) and docs are not counted: an image tag
    re-fetching a preview should not burn the client's budget.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    EXCLUDED_PREFIXES = ("/api/files/",)

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    def _is_excluded(self, path: str) -> bool:
        return path in self.EXCLUDED_PATHS or path.startswith(self.EXCLUDED_PREFIXES)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._is_excluded(request.url.path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                settings.rate_limit_window,
            )
            return error_response(RateLimitExceededError(retry_after=retry_after))

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Forget IPs with no request inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
