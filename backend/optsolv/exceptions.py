"""
OptSolv Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every failure the pipeline and the
       browsing endpoints can produce.
How:   Each exception carries a user-safe message and an optional context dict.
       The class attributes `status_code` and `error_code` tell the global
       handler in main.py which HTTP status and machine-readable `error`
       string to render.
Who:   Raised by gateways, services and auth; caught by the global handler
       (HTTP) or by the pipeline orchestrator (abort to idle).

Exception Hierarchy:
    OptSolvError (base)                      → 500
    ├── ValidationError                      → 400 (user must correct input)
    ├── FetchError                           → 400 (image unreachable / non-2xx)
    ├── EmptyResultError                     → 400 (OCR found no text)
    ├── UnauthorizedError                    → 401 (no or expired session)
    ├── NotFoundError                        → 404
    ├── PipelineBusyError                    → 409 (a run is already in flight)
    ├── RateLimitExceededError               → 429
    ├── ConfigurationError                   → 500 (missing API key / secret)
    ├── ServiceError                         → 500 (model call failed)
    ├── ParseError                           → 500 (model returned non-JSON)
    ├── SchemaError                          → 500 (JSON does not match task/note schema)
    ├── PersistenceError                     → 500 (database write failed)
    ├── StorageError                         → 500 (blob write failed)
    ├── InvalidTransitionError               → 500 (pipeline state machine misuse)
    └── CircuitBreakerOpenError              → 503 (Gemini failing repeatedly)

No error in this hierarchy is retried automatically. ParseError, FetchError
and ServiceError are transient: the user may re-upload and succeed.
"""

from typing import Any, Dict, Optional


class OptSolvError(Exception):
    """
    Base exception for all OptSolv application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only for 4xx errors)
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(OptSolvError):
    """
    Raised when client input fails validation.

    When:    File type outside the allow-list, file too large, empty text,
             malformed document id, bad preference value.

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Invalid file type. Only JPEG, PNG, and WEBP are allowed.",
            "details": {"field": "file", "content_type": "application/pdf"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class FetchError(OptSolvError):
    """Raised when the OCR gateway cannot download the image it was given."""

    status_code = 400
    error_code = "fetch_error"

    def __init__(
        self,
        message: str = "Failed to fetch image",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmptyResultError(OptSolvError):
    """Raised when the vision model returns no text (empty after trimming)."""

    status_code = 400
    error_code = "empty_result"

    def __init__(
        self,
        message: str = "No text found in image",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnauthorizedError(OptSolvError):
    """
    Raised when the request carries no valid session.

    The client is expected to redirect the user to the login screen.
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(OptSolvError):
    """
    Raised when a requested resource does not exist for the acting user.

    Rows owned by another user are reported exactly like missing rows.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PipelineBusyError(OptSolvError):
    """Raised when a user starts a pipeline run while another one is still active."""

    status_code = 409
    error_code = "pipeline_busy"

    def __init__(
        self,
        message: str = "A note is already being processed. Wait for it to finish.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(OptSolvError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ConfigurationError(OptSolvError):
    """Raised when a required external-service setting (API key, secret) is missing."""

    error_code = "configuration_error"

    def __init__(
        self,
        message: str = "AI service not configured",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceError(OptSolvError):
    """
    Raised when the generative model call fails.

    Single attempt: the caller surfaces this to the user, who may retry manually.
    """

    error_code = "service_error"

    def __init__(
        self,
        message: str = "The AI service failed to process the request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ParseError(OptSolvError):
    """
    Raised when the classification model's output is not valid JSON.

    Transient: re-running the analysis on the same text may succeed.
    """

    error_code = "parse_error"

    def __init__(
        self,
        message: str = "Failed to parse AI response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SchemaError(OptSolvError):
    """Raised when the model's JSON does not match the task/note schema."""

    error_code = "schema_error"

    def __init__(
        self,
        message: str = "AI response did not match the expected task and note format",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceError(OptSolvError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic. SQL details stay
    in the server-side log.
    """

    error_code = "persistence_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(OptSolvError):
    """Raised when writing or reading a blob in object storage fails."""

    error_code = "storage_error"

    def __init__(
        self,
        message: str = "Failed to upload file",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTransitionError(OptSolvError):
    """Raised when the pipeline state machine is asked for an illegal transition."""

    error_code = "invalid_transition"

    def __init__(self, state: str, event: str):
        super().__init__(
            message=f"Pipeline cannot handle '{event}' while in state '{state}'",
            context={"state": state, "event": event},
        )
        self.state = state
        self.event = event


class CircuitBreakerOpenError(OptSolvError):
    """
    Raised when the circuit breaker around Gemini is OPEN.

    CLOSED → (threshold failures) → OPEN → (recovery timeout) → HALF_OPEN
    → success → CLOSED, or failure → OPEN again.
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"Try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
