"""
DevCamper Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions, one per failure class the API reports.
How:   Each exception carries a user-facing message, an optional context dict
       (logged, never returned) and the HTTP status it maps to. The global
       handlers registered in main.py turn them into the error envelope:
       {"success": false, "error": "<message>"}.
Who:   Raised by services, the authorization gate and middleware.

Exception Hierarchy:
    DevCamperError (base)                 → 500
    ├── ValidationError                   → 400 Bad Request
    ├── DuplicateOwnedResource            → 400 Bad Request
    ├── QueryError                        → 400 Bad Request
    ├── NotAuthenticated                  → 401 Unauthorized
    │   └── InvalidToken                  → 401 Unauthorized
    ├── NotAuthorized                     → 403 Forbidden
    ├── NotFoundError                     → 404 Not Found
    ├── RateLimitExceededError            → 429 Too Many Requests
    ├── StoreFailure                      → 500 Internal Server Error
    └── UpstreamFailure                   → 502 Bad Gateway
        └── CircuitBreakerOpenError       → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class DevCamperError(Exception):
    """
    Base exception for all DevCamper application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status used by the global handler
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DevCamperError):
    """Client input is malformed or missing."""

    status_code = 400

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


class DuplicateOwnedResource(DevCamperError):
    """
    An ownership uniqueness rule would be violated.

    Examples: a publisher creating a second bootcamp, a user reviewing the
    same bootcamp twice.
    """

    status_code = 400


class QueryError(DevCamperError):
    """A list filter, sort, or select parameter could not be interpreted."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid query parameters",
        parameter: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if parameter:
            ctx["parameter"] = parameter
        super().__init__(message=message, context=ctx)
        self.parameter = parameter


class NotAuthenticated(DevCamperError):
    """The requester could not be identified (no token, bad token, gone user)."""

    status_code = 401

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidToken(NotAuthenticated):
    """An access token failed signature, format, or expiry verification."""

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotAuthorized(DevCamperError):
    """The requester is known but not allowed to perform the action."""

    status_code = 403

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DevCamperError):
    """
    Raised when a requested resource does not exist.

    Also raised when a path id cannot be parsed, so malformed and unknown ids
    are indistinguishable to the client.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"No {resource} with the id of {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(DevCamperError):
    """Client exceeded the per-IP request rate limit."""

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class StoreFailure(DevCamperError):
    """
    Unexpected data-store fault.

    The message returned to the client is always generic; details stay in
    the log.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Server Error",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamFailure(DevCamperError):
    """A dependency we call out to (geocoder, mail server) failed."""

    status_code = 502

    def __init__(
        self,
        message: str = "An upstream service failed",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(UpstreamFailure):
    """
    Raised when the circuit breaker guarding an upstream service is OPEN.

    State machine:
        CLOSED → (threshold consecutive failures) → OPEN
        OPEN → (recovery_timeout elapsed) → HALF_OPEN
        HALF_OPEN → success → CLOSED, failure → OPEN
    """

    status_code = 503

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Service is temporarily unavailable due to repeated failures. "
            f"Try again in approximately {recovery_time} seconds."
        )
        super().__init__(message=message, retry_after=recovery_time, context=context)
        self.recovery_time = recovery_time
