"""
Unit tests for the error model, HTTP status mapping and message sanitizing.
"""

import httpx
import pytest
from pydantic import ValidationError

from models.errors import (
    ErrorCode,
    MarketplaceError,
    create_busy_error,
    create_http_error,
    create_internal_error,
    create_network_error,
    create_not_found_error,
    sanitize_credentials,
    sanitize_stack_trace,
    sanitize_url,
)
from schemas.transition_status import TransitionStatusRequest
from utils.pydantic_error_mapper import map_pydantic_validation_error


class TestMarketplaceError:
    def test_to_dict_envelope(self):
        error = MarketplaceError(ErrorCode.BUSY, "still processing")
        assert error.to_dict() == {
            "error": {"code": "BUSY", "message": "still processing", "retryable": False}
        }

    def test_is_exception_with_message(self):
        error = MarketplaceError(ErrorCode.SERVER_ERROR, "boom", retryable=True)
        assert str(error) == "boom"
        assert isinstance(error, Exception)


class TestHttpMapping:
    """Non-2xx status codes map onto the error taxonomy."""

    def test_401_is_unauthorized(self):
        error = create_http_error(401, "PUT", "http://api/jobs/j1/status")
        assert error.code == ErrorCode.UNAUTHORIZED
        assert error.status_code == 401
        assert error.retryable is False

    def test_403_is_forbidden(self):
        error = create_http_error(403, "PUT", "http://api/jobs/j1/status", "Not your job")
        assert error.code == ErrorCode.FORBIDDEN
        assert "Not your job" in error.message

    def test_404_is_not_found(self):
        assert create_http_error(404, "GET", "http://api/x").code == ErrorCode.NOT_FOUND

    def test_5xx_is_retryable_server_error(self):
        error = create_http_error(503, "GET", "http://api/x")
        assert error.code == ErrorCode.SERVER_ERROR
        assert error.retryable is True

    def test_other_4xx_is_non_retryable_server_error(self):
        error = create_http_error(400, "PUT", "http://api/x", "Invalid status")
        assert error.code == ErrorCode.SERVER_ERROR
        assert error.retryable is False
        assert "Invalid status" in error.message

    def test_query_string_dropped_from_message(self):
        error = create_http_error(500, "GET", "http://api/notifications?limit=10&token=abc")
        assert "token=abc" not in error.message
        assert "http://api/notifications" in error.message


class TestOtherFactories:
    def test_network_error_is_retryable(self):
        original = httpx.ConnectError("connection refused")
        error = create_network_error("GET", "http://api/x", original_error=original)
        assert error.code == ErrorCode.NETWORK_ERROR
        assert error.retryable is True
        assert error.original_error is original

    def test_busy_error_names_record(self):
        error = create_busy_error("job", "j1")
        assert error.code == ErrorCode.BUSY
        assert "job j1" in error.message

    def test_not_found_error(self):
        error = create_not_found_error("application", "a9")
        assert error.code == ErrorCode.NOT_FOUND
        assert "a9" in error.message

    def test_internal_error_is_sanitized(self):
        error = create_internal_error("failed with Bearer abc.def\nTraceback (most recent call last):")
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.retryable is True
        assert "abc.def" not in error.message
        assert "Traceback" not in error.message


class TestSanitizers:
    def test_sanitize_url(self):
        assert sanitize_url("http://h/a?b=1#c") == "http://h/a"
        assert sanitize_url("http://h/a") == "http://h/a"

    def test_sanitize_credentials_bearer(self):
        assert sanitize_credentials("Authorization: Bearer eyJhbGciOi.x.y") == "Authorization: Bearer [token]"

    def test_sanitize_credentials_key_value(self):
        sanitized = sanitize_credentials('{"token": "s3cret", "password=hunter2"}')
        assert "s3cret" not in sanitized
        assert "hunter2" not in sanitized
        assert "[redacted]" in sanitized

    def test_sanitize_stack_trace_keeps_first_line(self):
        assert sanitize_stack_trace("  first line \n  File x, line 3") == "first line"


class TestPydanticErrorMapper:
    def test_missing_field(self):
        with pytest.raises(ValidationError) as exc_info:
            TransitionStatusRequest.model_validate({"entity_kind": "job", "entity_id": "j1"})
        error = map_pydantic_validation_error(exc_info.value)
        assert error.code == ErrorCode.VALIDATION_REJECTED
        assert "target_status" in error.message

    def test_field_validator_message_kept_verbatim(self):
        with pytest.raises(ValidationError) as exc_info:
            TransitionStatusRequest.model_validate(
                {"entity_kind": "job", "entity_id": "  ", "target_status": "active"}
            )
        error = map_pydantic_validation_error(exc_info.value)
        assert error.message == "Invalid entity_id: cannot be empty"

    def test_additional_issues_are_counted(self):
        with pytest.raises(ValidationError) as exc_info:
            TransitionStatusRequest.model_validate({})
        error = map_pydantic_validation_error(exc_info.value)
        assert "(and 2 more invalid field(s))" in error.message

    def test_strict_types_reject_numbers(self):
        """Numeric ids are not coerced to strings."""
        with pytest.raises(ValidationError) as exc_info:
            TransitionStatusRequest.model_validate(
                {"entity_kind": "job", "entity_id": 7, "target_status": "active"}
            )
        error = map_pydantic_validation_error(exc_info.value)
        assert error.message.startswith("Invalid entity_id:")
