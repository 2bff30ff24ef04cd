"""
OptSolv Backend — Request Logging Middleware
==============================================

What:  One access-log line per HTTP request.
How:   Measures wall time around the downstream call and logs method, path,
       status, duration, request ID and client IP on the `optsolv.access`
       logger. Level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
Who:   Applied to every request except /health.

Never logged: request bodies (image bytes, note text), cookies, the
Authorization header.

Typical durations:
    GET  /api/tasks:     10-50ms
    POST /api/ocr:       2-8s (vision model call dominates)
    POST /api/pipeline:  5-30s (upload + OCR + classification)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from optsolv.middleware.request_id import request_id_var

logger = logging.getLogger("optsolv.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

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
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
