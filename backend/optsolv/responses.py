"""
OptSolv Backend — Response Envelopes
======================================

What:  Builders for the two JSON shapes every endpoint returns.

    Success: {"success": true,  "data": ...}
    Error:   {"success": false, "error": "<code>", "message": "...",
              "details": {...}, "requestId": "..."}

Who:   Routes (success), exception handlers in main.py and the rate-limit
       middleware (error).
"""

from typing import Any, Dict, Optional

from starlette.responses import JSONResponse

from optsolv.exceptions import OptSolvError
from optsolv.middleware.request_id import request_id_var


def error_body(
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "message": message,
        "details": details or None,
        "requestId": request_id_var.get(""),
    }


def error_response(exc: OptSolvError) -> JSONResponse:
    """
    Render an OptSolvError with its own status code.

    Context is only echoed for client errors (< 500); server-side context
    (SQL errors, file paths, SDK messages) stays in the log.
    """
    details = exc.context if exc.status_code < 500 else None
    headers: Dict[str, str] = {}
    retry_after = getattr(exc, "retry_after", None) or getattr(exc, "recovery_time", None)
    if retry_after:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.message, details),
        headers=headers or None,
    )
