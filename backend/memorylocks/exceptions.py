"""
Memory Locks API — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every error the API reports.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py turn them into the
       `{Success: false, Message, Code, RequestId}` envelope with the right
       HTTP status code.
Who:   Raised by services, routes and middleware; caught by global handlers.

Exception Hierarchy:
    MemoryLocksError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MemoryLocksError(Exception):
    """
    Base exception for all Memory Locks application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500
    code: str = "SERVER_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MemoryLocksError):
    """
    Raised when client input is malformed or missing.

    When:    Missing ids, empty names, out-of-range counts, empty partial updates.
    HTTP:    400 Bad Request
    """

    status_code = 400
    code = "VALIDATION_ERROR"

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


class AuthenticationError(MemoryLocksError):
    """Missing or wrong Worker-API-Key header. HTTP 401."""

    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Worker API key is required"):
        super().__init__(message=message)


class NotFoundError(MemoryLocksError):
    """
    Raised when a referenced entity does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    NotFoundError so routes never check for None themselves.
    HTTP:    404 Not Found
    """

    status_code = 404
    code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
            if resource_id:
                message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(MemoryLocksError):
    """
    Raised when creating an entity would violate a uniqueness rule.

    When:    Registering an email or phone number that already has an account.
    HTTP:    409 Conflict
    """

    status_code = 409
    code = "CONFLICT"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MemoryLocksError):
    """
    Raised when a database read or write fails.

    When:    Constraint violation, lost connection, deadlock.
    HTTP:    500 Internal Server Error

    The response message is always generic; the original error type and
    query context only go to the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MemoryLocksError):
    """
    Raised when a caller exceeds a rate-limit policy.

    HTTP:    429 Too Many Requests, with Retry-After and X-RateLimit-* headers.
    """

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        retry_after: int = 60,
        headers: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Rate limit exceeded. Please try again later."
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
        self.headers = headers or {}
