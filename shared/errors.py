"""
Shared error handling for the task management services.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class TaskServiceException(Exception):
    """Base exception for task management services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class CacheError(TaskServiceException):
    """Cache backend failures surfaced to the caller."""

    status_code = 503

    def __init__(self, message: str = "Cache operation failed", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if cause is not None:
            details.setdefault("cause", str(cause))
        super().__init__("CACHE_ERROR", message, details)
        self.cause = cause


class SubscriptionLookupError(TaskServiceException):
    """Subscription status could not be resolved."""

    status_code = 503

    def __init__(self, message: str = "Subscription lookup failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SUBSCRIPTION_LOOKUP_ERROR", message, details)


class AuthenticationError(TaskServiceException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class NotFoundError(TaskServiceException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(TaskServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
