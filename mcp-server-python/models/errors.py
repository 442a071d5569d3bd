"""
Error model for the marketplace sync layer.

Provides structured error codes and sanitized error messages shared by the
lifecycle engine, the synchronizers, the REST gateway and the MCP tools.
"""

import logging
import re
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Structured error codes."""
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    TERMINAL_STATE = "TERMINAL_STATE"
    BUSY = "BUSY"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MarketplaceError(Exception):
    """Base exception for marketplace errors with structured error information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ):
        """
        Initialize a marketplace error.

        Args:
            code: The error code
            message: Human-readable error message
            retryable: Whether the user may re-trigger the action.
                Informational only; nothing in this package retries.
            original_error: The original exception if this wraps another error
            status_code: HTTP status returned by the backend, if any
        """
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary format for MCP response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable
            }
        }


def sanitize_url(url: str) -> str:
    """
    Strip query strings and fragments from a URL.

    Query parameters can carry ids or tokens that should not surface in
    user-facing messages.

    Args:
        url: The URL to sanitize

    Returns:
        URL without query string or fragment
    """
    return re.split(r"[?#]", url, maxsplit=1)[0]


def sanitize_credentials(error_msg: str) -> str:
    """
    Remove bearer tokens and credential-looking fragments from a message.

    Args:
        error_msg: The original error message

    Returns:
        Message with credentials masked
    """
    sanitized = re.sub(r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*", "Bearer [token]", error_msg)
    sanitized = re.sub(
        r"(?i)(token|password|secret)(['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+",
        r"\1\2[redacted]",
        sanitized,
    )
    return sanitized


def sanitize_stack_trace(error_msg: str) -> str:
    """
    Remove stack traces from error messages.

    Args:
        error_msg: The original error message

    Returns:
        Error message without stack trace
    """
    # Take only the first line (usually the most relevant)
    lines = error_msg.split('\n')
    if lines:
        return lines[0].strip()
    return error_msg


def create_validation_error(message: str) -> MarketplaceError:
    """
    Create a validation error.

    Raised for client-side rejections that never reach the network.

    Args:
        message: Description of the validation failure

    Returns:
        MarketplaceError with VALIDATION_REJECTED code
    """
    return MarketplaceError(
        code=ErrorCode.VALIDATION_REJECTED,
        message=message,
        retryable=False
    )


def create_terminal_state_error(message: str) -> MarketplaceError:
    """Create an error for a transition out of a terminal status."""
    return MarketplaceError(
        code=ErrorCode.TERMINAL_STATE,
        message=message,
        retryable=False
    )


def create_unauthorized_error(message: str, status_code: Optional[int] = None) -> MarketplaceError:
    """Create an error for an unknown role or a 401 from the backend."""
    return MarketplaceError(
        code=ErrorCode.UNAUTHORIZED,
        message=message,
        retryable=False,
        status_code=status_code,
    )


def create_busy_error(kind: str, entity_id: str) -> MarketplaceError:
    """
    Create a mutation guard refusal.

    Callers surface this as a "still processing" state rather than an error.

    Args:
        kind: Entity kind of the guarded record
        entity_id: Identifier of the guarded record

    Returns:
        MarketplaceError with BUSY code
    """
    return MarketplaceError(
        code=ErrorCode.BUSY,
        message=f"Still processing a previous request for {kind} {entity_id}",
        retryable=False
    )


def create_not_found_error(kind: str, entity_id: str, status_code: Optional[int] = None) -> MarketplaceError:
    """Create an error for a record that is not loaded locally or is gone server-side."""
    return MarketplaceError(
        code=ErrorCode.NOT_FOUND,
        message=f"{kind} not found: {entity_id}",
        retryable=False,
        status_code=status_code,
    )


def create_http_error(status_code: int, method: str, url: str, detail: Optional[str] = None) -> MarketplaceError:
    """
    Map a non-2xx backend response to a structured error.

    Args:
        status_code: HTTP status returned by the backend
        method: HTTP method of the request
        url: Request URL (query string is dropped)
        detail: Optional message extracted from the response body

    Returns:
        MarketplaceError with UNAUTHORIZED, FORBIDDEN, NOT_FOUND or SERVER_ERROR code
    """
    target = f"{method} {sanitize_url(url)}"
    suffix = f": {sanitize_stack_trace(sanitize_credentials(detail))}" if detail else ""

    if status_code == 401:
        return create_unauthorized_error(f"Not signed in for {target}{suffix}", status_code)
    if status_code == 403:
        return MarketplaceError(
            code=ErrorCode.FORBIDDEN,
            message=f"Not permitted: {target}{suffix}",
            retryable=False,
            status_code=status_code,
        )
    if status_code == 404:
        return MarketplaceError(
            code=ErrorCode.NOT_FOUND,
            message=f"Not found: {target}{suffix}",
            retryable=False,
            status_code=status_code,
        )
    return MarketplaceError(
        code=ErrorCode.SERVER_ERROR,
        message=f"Server error {status_code} for {target}{suffix}",
        retryable=status_code >= 500,
        status_code=status_code,
    )


def create_network_error(method: str, url: str, original_error: Optional[Exception] = None) -> MarketplaceError:
    """
    Create a transport failure error (connection refused, timeout, reset).

    Args:
        method: HTTP method of the request
        url: Request URL (query string is dropped)
        original_error: The transport exception

    Returns:
        MarketplaceError with NETWORK_ERROR code
    """
    reason = type(original_error).__name__ if original_error else "transport failure"
    return MarketplaceError(
        code=ErrorCode.NETWORK_ERROR,
        message=f"Network error for {method} {sanitize_url(url)}: {reason}",
        retryable=True,
        original_error=original_error,
    )


def create_internal_error(message: str, original_error: Optional[Exception] = None) -> MarketplaceError:
    """
    Create an internal error for unexpected exceptions.

    Args:
        message: Description of the internal error
        original_error: The original exception

    Returns:
        MarketplaceError with INTERNAL_ERROR code
    """
    sanitized_message = sanitize_stack_trace(sanitize_credentials(message))
    logger.error("Unexpected failure: %s", sanitized_message, exc_info=original_error)

    return MarketplaceError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Internal error: {sanitized_message}",
        retryable=True,
        original_error=original_error
    )
