"""
Roomly Backend - Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for every error scenario the API reports.
How:   Each exception carries a message and optional context dict. Global
       exception handlers (registered in main.py) map the class to an HTTP
       status code and a structured JSON error body.
Who:   Raised by services, dependencies and routes; caught by global handlers.

Exception Hierarchy:
    RoomlyError (base)
    ├── BadRequestError                  → 400 Bad Request
    │   └── AlreadyAuthenticatedError    → 400 Bad Request
    ├── ValidationError                  → 422 Unprocessable Entity (field errors)
    ├── AuthenticationRequiredError      → 401 Unauthorized
    ├── InvalidAuthenticationTokenError  → 401 Unauthorized (clears session cookie)
    ├── InvalidCredentialsError          → 401 Unauthorized
    ├── InactiveAccountError             → 403 Forbidden
    ├── ForbiddenError                   → 403 Forbidden
    ├── NotFoundError                    → 404 Not Found
    ├── ConflictError                    → 409 Conflict
    ├── RateLimitExceededError           → 429 Too Many Requests
    ├── ExternalServiceError             → 502 Bad Gateway
    ├── FileStorageError                 → 500 Internal Server Error
    └── DatabaseError                    → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class RoomlyError(Exception):
    """
    Base exception for all Roomly application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BadRequestError(RoomlyError):
    """The request could not be understood (malformed body, bad path parameter)."""

    def __init__(
        self,
        message: str = "The request could not be processed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AlreadyAuthenticatedError(BadRequestError):
    """An OAuth login was started by a client that already holds a session."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="you already have an active session", context=context)


class ValidationError(RoomlyError):
    """
    Raised when input fails business validation.

    Carries a `field → message` map, built by roomly.validator.Validator.
    HTTP: 422 Unprocessable Entity

    Example response:
        {
            "error": "failed_validation",
            "message": "One or more fields are invalid",
            "details": {"email": "must be a valid email address"}
        }
    """

    def __init__(
        self,
        errors: Optional[Dict[str, str]] = None,
        message: str = "One or more fields are invalid",
    ):
        self.errors = dict(errors or {})
        super().__init__(message=message, context=self.errors)


class AuthenticationRequiredError(RoomlyError):
    def __init__(self):
        super().__init__(message="you must be authenticated to access this resource")


class InvalidAuthenticationTokenError(RoomlyError):
    """
    The session token is malformed, unknown or expired.

    The handler for this exception also expires the session cookie so the
    client stops replaying a dead token.
    """

    def __init__(self):
        super().__init__(message="invalid or missing authentication token")


class InvalidCredentialsError(RoomlyError):
    """Wrong password, or a reset/email-change code that does not match."""

    def __init__(self, message: str = "invalid authentication credentials"):
        super().__init__(message=message)


class InactiveAccountError(RoomlyError):
    def __init__(self):
        super().__init__(message="your user account must be activated to access this resource")


class ForbiddenError(RoomlyError):
    def __init__(self, message: str = "you do not have permission to access this resource"):
        super().__init__(message=message)


class NotFoundError(RoomlyError):
    """
    Raised when a requested resource does not exist (or is not visible to
    the caller, for owner-scoped resources).

    SQLAlchemy returns None for missing rows; services convert that None into
    NotFoundError so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"the requested {resource} could not be found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' could not be found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(RoomlyError):
    """The request conflicts with existing state (e.g. overlapping booking dates)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RoomlyError):
    """
    Raised when a client exceeds the per-IP request rate limit.
    HTTP: 429 Too Many Requests, with a Retry-After header.
    """

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


class ExternalServiceError(RoomlyError):
    """
    An upstream provider (GitHub, Google, Resend) failed or returned
    something unusable.

    HTTP: 502 Bad Gateway. The upstream response body is logged, never
    returned to the client.
    """

    def __init__(
        self,
        service: str,
        message: str = "An upstream service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message=message, context=ctx)
        self.service = service


class FileStorageError(RoomlyError):
    """
    Raised when file system operations fail (disk full, permission denied).
    The client gets a generic message; paths are logged server-side only.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RoomlyError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL text and
    constraint names go to the log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
