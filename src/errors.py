"""
Error taxonomy for the inspection workflow.
Every error carries a stable code, a short user-facing message and a retryable flag.
"""

from typing import Optional

import requests
from pydantic import BaseModel

from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="ERRORS")


class InspectionError(Exception):
    """Base class for all workflow errors."""

    code = "UNKNOWN_ERROR"
    user_message = "An unexpected error occurred. Please try again."
    retryable = False

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.user_message
        self.details = details
        super().__init__(self.message)


# ============================================================================
# BOUNDARY / HTTP
# ============================================================================

class InputValidationError(InspectionError):
    code = "VALIDATION_ERROR"
    user_message = "Invalid data provided. Please check your input."


class NotFoundError(InspectionError):
    code = "NOT_FOUND"
    user_message = "The requested resource was not found."


class RateLimited(InspectionError):
    code = "RATE_LIMITED"
    user_message = "Too many requests. Please wait a moment before trying again."
    retryable = True


class ServerError(InspectionError):
    code = "SERVER_ERROR"
    user_message = "Server error. Please try again in a moment."
    retryable = True


class NetworkError(InspectionError):
    code = "NETWORK_ERROR"
    user_message = "Network connection failed. Please check your internet connection."
    retryable = True


class RequestTimeout(InspectionError):
    code = "TIMEOUT"
    user_message = "Request timed out. Please try again."
    retryable = True


class PermissionDenied(InspectionError):
    code = "PERMISSION_DENIED"
    user_message = "Permission denied. Please allow camera access."


# ============================================================================
# EVIDENCE POLICY
# ============================================================================

class EvidenceError(InspectionError):
    """Media rejected by the evidence policy."""


class InvalidFileType(EvidenceError):
    code = "INVALID_FILE_TYPE"
    user_message = "Invalid file type. Only images and videos are allowed."


class FileTooLarge(EvidenceError):
    code = "FILE_TOO_LARGE"
    user_message = "File too large. Maximum size is 50MB."


class PhotoLimitExceeded(EvidenceError):
    code = "PHOTO_LIMIT_EXCEEDED"
    user_message = "Maximum 5 photos per item reached."


class VideoLimitExceeded(EvidenceError):
    code = "VIDEO_LIMIT_EXCEEDED"
    user_message = "Only one video per item is allowed."


class VideoTooLong(EvidenceError):
    code = "VIDEO_TOO_LONG"
    user_message = "Video too long. Maximum duration is 2 minutes."


# ============================================================================
# WORKFLOW
# ============================================================================

class CameraUnavailable(InspectionError):
    code = "CAMERA_UNAVAILABLE"
    user_message = "No camera found on this device."


class CaptureBusy(InspectionError):
    code = "CAPTURE_BUSY"
    user_message = "An upload is already in progress. Please wait."


class CaptureStateError(InspectionError):
    code = "INVALID_CAPTURE_STATE"
    user_message = "The camera is not ready for this action."


class StorageError(InspectionError):
    code = "STORAGE_ERROR"
    user_message = "Failed to upload file. Please try again."
    retryable = True


class PersistenceError(InspectionError):
    code = "PERSISTENCE_ERROR"
    user_message = "Changes could not be saved. They are kept locally."
    retryable = True


class CompletionFailed(InspectionError):
    code = "COMPLETION_FAILED"
    user_message = "Failed to complete inspection."


# ============================================================================
# MAPPING
# ============================================================================

class AppError(BaseModel):
    """Error record surfaced to the user interface."""
    code: str
    message: str
    retryable: bool = False
    operation: Optional[str] = None
    details: Optional[str] = None


STATUS_ERRORS = {
    400: InputValidationError,
    404: NotFoundError,
    413: FileTooLarge,
    429: RateLimited,
    500: ServerError,
    502: ServerError,
    503: ServerError,
}


def error_for_status(status_code: int, details: Optional[str] = None) -> InspectionError:
    """
    Map an HTTP status code to a workflow error.

    Args:
        status_code: HTTP response status
        details: Optional response body or context

    Returns:
        Matching InspectionError instance
    """
    if status_code in (401, 403):
        return PermissionDenied("Access denied.", details=details)
    error_cls = STATUS_ERRORS.get(status_code)
    if error_cls is None:
        error_cls = ServerError if status_code >= 500 else InspectionError
    return error_cls(details=details)


def to_app_error(exc: BaseException, operation: str) -> AppError:
    """
    Convert any exception into an AppError and log it with the operation name.

    Args:
        exc: Exception raised by a collaborator or the workflow
        operation: Name of the operation that failed

    Returns:
        AppError with code, user message and retryable flag
    """
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        err = error_for_status(exc.response.status_code, details=str(exc))
    elif isinstance(exc, requests.Timeout):
        err = RequestTimeout(details=str(exc))
    elif isinstance(exc, requests.ConnectionError):
        err = NetworkError(details=str(exc))
    elif isinstance(exc, PermissionError):
        err = PermissionDenied(details=str(exc))
    elif isinstance(exc, InspectionError):
        err = exc
    else:
        err = InspectionError(details=f"{type(exc).__name__}: {exc}")

    app_error = AppError(
        code=err.code,
        message=err.message,
        retryable=err.retryable,
        operation=operation,
        details=err.details,
    )
    logger.error(f"[{operation}] {app_error.code}: {app_error.message}"
                 + (f" ({app_error.details})" if app_error.details else ""))
    return app_error
