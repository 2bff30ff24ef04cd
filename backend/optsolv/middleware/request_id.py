"""
OptSolv Backend — Request ID Middleware
=========================================

What:  Assigns a correlation ID to each request and echoes it back.
How:   Uses the client's X-Request-ID header when present, otherwise a short
       UUID. The value lives in a ContextVar so loggers, exception handlers
       and the pipeline orchestrator can read it without passing it around.
Who:   Applied to every request via Starlette middleware.

The same ID appears in the `requestId` field of every error envelope, so a
user reporting an error can be matched to the server log lines of the run.
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
        1. Take X-Request-ID from the client if sent, else generate 8 hex chars
        2. Store it in request_id_var and request.state.request_id
        3. Add it to the response headers
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
