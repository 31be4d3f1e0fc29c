"""Error classification utilities for backend call failures."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of errors that can occur while talking to the backend."""

    AUTHENTICATION_FAILED = "authentication_failed"
    PERMISSION_DENIED = "permission_denied"
    NETWORK_ERROR = "network_error"
    RECORD_NOT_FOUND = "record_not_found"
    VALIDATION_FAILED = "validation_failed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_RECORD_NOT_FOUND = "ERR_RECORD_NOT_FOUND"
    ERR_VALIDATION_FAILED = "ERR_VALIDATION_FAILED"
    ERR_RATE_LIMIT_EXCEEDED = "ERR_RATE_LIMIT_EXCEEDED"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[
    Literal["rate_limit", "auth", "network", "not_found", "validation"],
    dict[str, list[str] | set[str]],
] = {
    "rate_limit": {
        "phrases": ["rate limit", "too many requests", "429"],
        "exception_types": set(),
    },
    "auth": {
        "phrases": [
            "authentication failed",
            "failed to authenticate",
            "unauthorized",
            "invalid token",
            "invalid email or password",
            "401",
        ],
        "exception_types": {"AuthError"},
    },
    "network": {
        "phrases": ["connection", "timeout", "timed out", "network", "502", "503", "504", "unreachable"],
        "exception_types": {"ConnectionError", "TimeoutError", "ConnectError", "ReadTimeout"},
    },
    "not_found": {
        "phrases": ["not found", "wasn't found", "record not available"],
        "exception_types": {"RecordNotFoundError"},
    },
    "validation": {
        "phrases": ["failed to create record", "validation", "cannot be blank", "invalid value"],
        "exception_types": {"TaskValidationError"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["rate_limit", "auth", "network", "not_found", "validation"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_backend_error(exception: Exception) -> tuple[ErrorCategory, str]:
    """Classify a backend call failure and return a user-friendly message.

    Args:
        exception: The exception raised by the gateway

    Returns:
        Tuple of (ErrorCategory, user_friendly_message)
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if exception_type == "PermissionError" or "forbidden" in error_str or "403" in error_str:
        return (
            ErrorCategory.PERMISSION_DENIED,
            "You don't have permission to change this record.",
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return (
            ErrorCategory.AUTHENTICATION_FAILED,
            "Your session is no longer valid. Please sign in again.",
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="rate_limit"):
        return (
            ErrorCategory.RATE_LIMIT_EXCEEDED,
            "Too many requests. Please wait a moment and try again.",
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Network error occurred. Please check your connection and try again.",
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="not_found"):
        return (
            ErrorCategory.RECORD_NOT_FOUND,
            "That item no longer exists. Reload the page to refresh your tasks.",
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="validation"):
        return (
            ErrorCategory.VALIDATION_FAILED,
            "Some values were rejected. Please check them and try again.",
        )

    return (
        ErrorCategory.UNKNOWN,
        "An unexpected error occurred. Please try again later.",
    )


_SEVERITY: dict[ErrorCategory, ErrorSeverity] = {
    ErrorCategory.AUTHENTICATION_FAILED: ErrorSeverity.HIGH,
    ErrorCategory.PERMISSION_DENIED: ErrorSeverity.MEDIUM,
    ErrorCategory.NETWORK_ERROR: ErrorSeverity.MEDIUM,
    ErrorCategory.RECORD_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCategory.VALIDATION_FAILED: ErrorSeverity.LOW,
    ErrorCategory.RATE_LIMIT_EXCEEDED: ErrorSeverity.MEDIUM,
    ErrorCategory.UNKNOWN: ErrorSeverity.MEDIUM,
}

_CODES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTHENTICATION_FAILED: ErrorCode.ERR_AUTHENTICATION_FAILED,
    ErrorCategory.PERMISSION_DENIED: ErrorCode.ERR_PERMISSION_DENIED,
    ErrorCategory.NETWORK_ERROR: ErrorCode.ERR_NETWORK_ERROR,
    ErrorCategory.RECORD_NOT_FOUND: ErrorCode.ERR_RECORD_NOT_FOUND,
    ErrorCategory.VALIDATION_FAILED: ErrorCode.ERR_VALIDATION_FAILED,
    ErrorCategory.RATE_LIMIT_EXCEEDED: ErrorCode.ERR_RATE_LIMIT_EXCEEDED,
    ErrorCategory.UNKNOWN: ErrorCode.ERR_UNKNOWN,
}


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with a recovery suggestion."""
    category, suggestion = classify_backend_error(exception)
    return ErrorResponse(
        code=_CODES[category],
        message=str(exception),
        suggestion=suggestion,
        severity=_SEVERITY[category],
    )
