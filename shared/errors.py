"""
Shared error handling for the storefront services.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = False
    error: str
    code: int
    timestamp: str
    field: Optional[str] = None
    details: Optional[Any] = None


class StorefrontException(Exception):
    """Base exception for storefront services."""

    status_code = 500
    expose_message = True

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def public_message(self, debug: bool = False) -> str:
        """Message safe to hand to the client."""
        if self.expose_message or debug:
            return self.message
        return "Internal server error"


class ValidationError(StorefrontException):
    """Client supplied malformed, missing or out-of-range input."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", field: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
        self.field = field


class AuthError(StorefrontException):
    """Missing or invalid admin credentials."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class RateLimitError(StorefrontException):
    """Request quota exceeded."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = 0,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)
        self.retry_after = retry_after


class NotFoundError(StorefrontException):
    """Valid identifier with no matching active row, or unknown route."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class StoreError(StorefrontException):
    """Underlying persistence failure."""

    expose_message = False

    def __init__(self, message: str = "Store operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)


class StoreUnavailableError(StoreError):
    """Store connection could not be established at startup."""


class HTTPError(StorefrontException):
    """Framework-level HTTP failure such as an unknown path or unsupported method."""

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("HTTP_ERROR", message, details)
        self.status_code = status_code


class ServiceError(StorefrontException):
    """Unexpected or uncategorized failure."""

    expose_message = False

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SYSTEM_ERROR", message, details)


def utc_timestamp() -> str:
    """ISO-8601 timestamp used in response envelopes."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_error_response(exc: StorefrontException, debug: bool = False,
                         extra_details: Optional[Any] = None) -> ErrorResponse:
    """Build the client-facing envelope for an exception.

    Field names are always surfaced for validation failures; ``details`` only
    leaves the process when the service runs in debug mode.
    """
    details = None
    if debug:
        details = extra_details if extra_details is not None else (exc.details or None)

    return ErrorResponse(
        error=exc.public_message(debug),
        code=exc.status_code,
        timestamp=utc_timestamp(),
        field=getattr(exc, "field", None),
        details=details,
    )
