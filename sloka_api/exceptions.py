"""
Sloka API — Exception Hierarchy
================================

What:  A closed set of application exceptions, each tagged with the HTTP
       status it maps to.
How:   Every exception carries a client-safe message and an optional context
       dict. Handlers registered in main.py turn them into the error envelope
       `{"success": false, "error": <message>}`.
Who:   Raised by the store, routes and middleware; caught by global handlers.

Exception Hierarchy:
    SlokaError (base)               → 500
    ├── ValidationError             → 400 Bad Request
    ├── NotFoundError               → 404 Not Found
    ├── RateLimitExceededError      → 429 Too Many Requests
    └── DatabaseError               → 500 (store unavailable / query failed)
"""

from typing import Any, Dict, Optional


class SlokaError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:      Client-facing error description
        context:      Debug info (logged, never returned to the client)
        status_code:  HTTP status used by the global handler
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


class ValidationError(SlokaError):
    """
    Client input failed validation (malformed identifier, missing query
    parameter). HTTP 400.
    """

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


class NotFoundError(SlokaError):
    """No matching record. HTTP 404."""

    status_code = 404

    def __init__(
        self,
        message: str = "The requested resource was not found",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(SlokaError):
    """
    Client exceeded a per-address rate limit. HTTP 429.

    The middleware answers directly (it runs outside the exception handlers),
    so this type is raised by `SlidingWindowLimiter.hit()` and converted there.
    """

    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests, please try again later.",
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(SlokaError):
    """
    The store could not be reached or a query failed. HTTP 500.

    The message returned to the client is generic in production; the
    original driver error type is kept in `context` for the server log.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Database is unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
