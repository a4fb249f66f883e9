"""
Excalidraw Organizer Backend — Custom Exception Hierarchy
==========================================================

What:  Application-specific exceptions for the different failure scenarios.
Why:   Services raise domain errors; global handlers in main.py turn them into
       structured JSON responses with the right HTTP status code. Routes never
       build error responses by hand.
How:   Each exception carries a user-facing message, an optional context dict
       (logged, and for client errors returned as `details`), an HTTP status
       code and a machine-readable error code.

Exception Hierarchy:
    OrganizerError (base)                → 500
    ├── ValidationError                  → 400 Bad Request
    ├── AuthenticationError              → 401 Unauthorized
    ├── AuthorizationError               → 403 Forbidden (bad token)
    ├── ForbiddenError                   → 403 Forbidden (CSRF, ownership)
    ├── NotFoundError                    → 404 Not Found
    ├── ConflictError                    → 409 Conflict
    ├── RateLimitExceededError           → 429 Too Many Requests
    ├── DatabaseError                    → 500 Internal Server Error
    └── StorageError                     → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class OrganizerError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(OrganizerError):
    """
    Raised when client input fails a business rule.

    Schema-level problems (missing fields, wrong types) are reported by
    FastAPI's RequestValidationError and rendered in the same shape.

    Example response:
        {
            "error": "validation_error",
            "message": "Password does not meet security requirements",
            "details": {"errors": [...], "suggestions": [...], "strength": "Weak"}
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


class AuthenticationError(OrganizerError):
    """
    Raised when the caller is not (or no longer) authenticated.

    When: missing token, expired token, wrong credentials.
    HTTP: 401 Unauthorized
    """

    status_code = 401
    error_code = "authentication_error"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(OrganizerError):
    """Raised when a presented token is malformed or has a bad signature (403)."""

    status_code = 403
    error_code = "authorization_error"

    def __init__(
        self,
        message: str = "Invalid token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(OrganizerError):
    """Raised when an authenticated request is refused (e.g. CSRF failure)."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Access forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(OrganizerError):
    """
    Raised when a requested resource does not exist.

    Resources owned by another user are reported as not found as well, so
    the API never confirms the existence of someone else's project or drawing.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        message = message or f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(OrganizerError):
    """Raised on uniqueness violations: duplicate email, duplicate project name."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(OrganizerError):
    """
    Raised when a client exceeds one of the per-IP rate limits.

    Response includes a Retry-After header with the seconds until the
    oldest request in the window expires.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(
            message=message or "Too many requests. Please try again later.",
            context=ctx,
        )
        self.retry_after = retry_after


class DatabaseError(OrganizerError):
    """
    Raised when database operations fail unexpectedly.

    The client always receives a generic message; the context (query,
    constraint name, driver error) is logged server-side only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(OrganizerError):
    """
    Raised when an object storage operation fails after all retries.

    When: Supabase unreachable, bucket missing, disk full, corrupt object.
    HTTP: 500 Internal Server Error
    """

    status_code = 500
    error_code = "storage_error"

    def __init__(
        self,
        message: str = "Storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
