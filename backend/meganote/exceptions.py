"""
Meganote Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return JSON error envelopes with the matching HTTP status code.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    MeganoteError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 400 Bad Request (referenced entity absent)
    ├── PreconditionError        → 400 Bad Request (referential guard)
    ├── AuthenticationError      → 401 Unauthorized (missing/malformed credential)
    ├── AuthorizationError       → 403 Forbidden (invalid/expired credential)
    ├── ConflictError            → 409 Conflict (uniqueness violation)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DeliveryError            → 500 Internal Server Error (mail relay)
    └── UnexpectedError          → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MeganoteError(Exception):
    """
    Base exception for all Meganote application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Structured detail. Returned as `details` on 4xx responses;
                  on 5xx it is only logged, never returned to the client
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MeganoteError):
    """
    Raised when client input is missing or malformed.

    Example response:
        {
            "error": "validation_error",
            "message": "Missing required data!",
            "details": {"field": "username"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Missing required data!",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(MeganoteError):
    """
    Raised when a referenced entity does not exist.

    Surfaced as 400 rather than 404: the client referenced an id that is
    not (or no longer) resolvable, which is treated as bad input.
    """

    status_code = 400
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"No {resource} found!"
            if resource_id:
                message = f"No {resource} with id: {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PreconditionError(MeganoteError):
    """Raised when a referential guard refuses a mutation (e.g. deleting a user with live notes)."""

    status_code = 400
    error_code = "precondition_failed"


class AuthenticationError(MeganoteError):
    """
    Raised when the request carries no usable credential.

    When:  Missing Authorization header, non-Bearer scheme, unknown login,
           wrong password.
    HTTP:  401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(MeganoteError):
    """
    Raised when a well-formed credential fails verification.

    When:  Bad signature, undecodable token, expired token.
    HTTP:  403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Forbidden!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(MeganoteError):
    """
    Raised by the uniqueness guard when a live entity already owns the key.

    The same exception is produced whether the duplicate is caught by the
    pre-check or by the storage-level unique index.
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "This entity already exists!",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class RateLimitExceededError(MeganoteError):
    """
    Raised when a client exceeds the per-IP login rate limit.

    Response includes a Retry-After header with the seconds until the
    oldest attempt leaves the window.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = (
                "Too many login attempts from this IP, "
                "please try again after a 60 second pause"
            )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DeliveryError(MeganoteError):
    """
    Raised when the mail relay rejects or fails to accept a message.

    The password-reset flow rolls back the pending reset ticket before
    letting this propagate.
    """

    status_code = 500
    error_code = "delivery_failed"

    def __init__(
        self,
        message: str = "The email could not be sent. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnexpectedError(MeganoteError):
    """
    Raised when a storage or runtime failure has no business meaning.

    The message returned to the client is always generic; the original
    error type and details are kept in `context` and logged server-side.
    """

    status_code = 500
    error_code = "internal_server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
