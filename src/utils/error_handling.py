"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for application errors."""

    error_type = "app_error"

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    error_type = "not_found"

    def __init__(self, message: str = "Resource not found", resource: Optional[str] = None):
        details = {"resource": resource} if resource else None
        super().__init__(message, status_code=404, details=details)


class ValidationError(AppError):
    """Raised when input validation fails."""

    error_type = "validation_error"

    def __init__(self, message: str = "Invalid input", field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message, status_code=422, details=details)
        self.field = field


class InvalidStateError(AppError):
    """Raised when an operation is not legal in the current lifecycle state."""

    error_type = "invalid_state"

    def __init__(self, message: str, current: Optional[str] = None, attempted: Optional[str] = None):
        details = {}
        if current:
            details["current"] = current
        if attempted:
            details["attempted"] = attempted
        super().__init__(message, status_code=409, details=details)
        self.current = current
        self.attempted = attempted


class AuthorizationError(AppError):
    """Raised when the caller's role does not allow the operation."""

    error_type = "authorization_error"

    def __init__(self, message: str = "Not allowed", required_role: Optional[str] = None):
        details = {"required_role": required_role} if required_role else None
        super().__init__(message, status_code=403, details=details)


def to_response(error: AppError, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    body: Dict[str, Any] = {
        "message": error.message,
        "status": "error",
        "error_type": error.error_type,
        "details": error.details,
    }
    if correlation_id:
        body["correlation_id"] = correlation_id
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }
