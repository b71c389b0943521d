"""
Unit tests for the error taxonomy and input validators.
"""

import pytest
import requests

from src.errors import (
    CompletionFailed,
    FileTooLarge,
    InputValidationError,
    InspectionError,
    NetworkError,
    NotFoundError,
    PermissionDenied,
    RateLimited,
    RequestTimeout,
    ServerError,
    StorageError,
    error_for_status,
    to_app_error,
)
from utils.validators import (
    sanitize_filename,
    validate_email,
    validate_item_notes,
    validate_order_number,
    validate_signature,
    validate_test_drive_km,
)


class TestErrorForStatus:
    """HTTP status -> workflow error mapping."""

    @pytest.mark.parametrize("status,expected", [
        (400, InputValidationError),
        (404, NotFoundError),
        (413, FileTooLarge),
        (429, RateLimited),
        (500, ServerError),
        (503, ServerError),
        (599, ServerError),
    ])
    def test_known_statuses(self, status, expected):
        assert isinstance(error_for_status(status), expected)

    def test_auth_failures_are_permission_denied(self):
        assert isinstance(error_for_status(401), PermissionDenied)
        assert isinstance(error_for_status(403), PermissionDenied)

    def test_unknown_client_error_is_generic(self):
        err = error_for_status(418)
        assert type(err) is InspectionError
        assert err.retryable is False

    def test_retryable_flags(self):
        assert RateLimited().retryable is True
        assert StorageError().retryable is True
        assert InputValidationError().retryable is False


class TestToAppError:
    """Exception -> AppError conversion."""

    def test_inspection_error_keeps_code_and_message(self):
        app_error = to_app_error(CompletionFailed(details="pdf"), "complete_inspection")

        assert app_error.code == "COMPLETION_FAILED"
        assert app_error.message == "Failed to complete inspection."
        assert app_error.operation == "complete_inspection"
        assert app_error.details == "pdf"

    def test_timeout_maps_to_request_timeout(self):
        app_error = to_app_error(requests.Timeout("slow"), "order_lookup")
        assert app_error.code == RequestTimeout.code
        assert app_error.retryable is True

    def test_connection_error_maps_to_network_error(self):
        app_error = to_app_error(requests.ConnectionError("down"), "upload_media")
        assert app_error.code == NetworkError.code

    def test_http_error_uses_status(self):
        response = requests.Response()
        response.status_code = 429
        app_error = to_app_error(requests.HTTPError(response=response), "send_email")
        assert app_error.code == RateLimited.code

    def test_os_permission_error(self):
        app_error = to_app_error(PermissionError("camera"), "start_camera")
        assert app_error.code == PermissionDenied.code

    def test_unknown_exception(self):
        app_error = to_app_error(ZeroDivisionError("boom"), "anything")
        assert app_error.code == "UNKNOWN_ERROR"
        assert "ZeroDivisionError" in app_error.details


class TestValidators:
    """Boundary input validators."""

    def test_order_number_normalized(self):
        is_valid, error, value = validate_order_number("  rn123-45 ")
        assert is_valid is True
        assert error is None
        assert value == "RN123-45"

    @pytest.mark.parametrize("value", ["", "   ", None, "ab", "RN 123", "RN/123"])
    def test_order_number_rejected(self, value):
        is_valid, error, _ = validate_order_number(value)
        assert is_valid is False
        assert error

    def test_email(self):
        assert validate_email(None) == (True, None, None)
        assert validate_email(" User@Example.COM ")[2] == "user@example.com"
        assert validate_email("not-an-email")[0] is False

    def test_notes_trimmed_and_limited(self):
        assert validate_item_notes("  scratch on door  ") == (True, None, "scratch on door")
        assert validate_item_notes(None) == (True, None, "")
        assert validate_item_notes("x" * 2001)[0] is False

    def test_signature(self):
        assert validate_signature("Jane Doe")[0] is True
        assert validate_signature("data:image/png;base64,AAAA")[0] is True
        assert validate_signature("data:text/plain;base64,AAAA")[0] is False
        assert validate_signature("  ")[0] is False

    def test_test_drive_km(self):
        assert validate_test_drive_km(None) == (True, None, None)
        assert validate_test_drive_km("12.5") == (True, None, 12.5)
        assert validate_test_drive_km(-1)[0] is False
        assert validate_test_drive_km(100)[0] is False
        assert validate_test_drive_km("far")[0] is False

    def test_sanitize_filename(self):
        assert sanitize_filename("../../etc/pass wd.jpg") == "pass_wd.jpg"
        assert sanitize_filename("a:b?.png") == "a_b_.png"
        assert sanitize_filename(".mp4") == ".mp4"
