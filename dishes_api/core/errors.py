"""
Closed family of service errors.

Services raise these internally; the ``service_operation`` boundary turns them
into ``ServiceResult`` envelopes, so callers only ever branch on ``success``
and, when they need to, on ``kind``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    UPLOAD_FAILED = "upload_failed"
    INTERNAL = "internal"


class ErrorCode:
    """Stable category strings exposed in the ``error`` field of an envelope."""

    PROFILE_NOT_FOUND = "Profile not found"
    USER_NOT_FOUND = "User not found"
    DISH_NOT_FOUND = "Dish not found"
    TAG_EXISTS = "Profile tag already exists"
    INVALID_FILE_TYPE = "Invalid file type"
    FILE_TOO_LARGE = "File too large"
    INVALID_ROLE = "Invalid role"
    INVALID_STATUS = "Invalid status"
    VALIDATION_FAILED = "Validation failed"
    CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"
    FORBIDDEN = "Not allowed"
    UPLOAD_FAILED = "Upload failed"
    INTERNAL_ERROR = "Internal server error"


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    default_code = ErrorCode.USER_NOT_FOUND


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION
    default_code = ErrorCode.VALIDATION_FAILED


class DuplicateError(ServiceError):
    kind = ErrorKind.DUPLICATE
    default_code = ErrorCode.TAG_EXISTS


class UploadFailedError(ServiceError):
    kind = ErrorKind.UPLOAD_FAILED
    default_code = ErrorCode.UPLOAD_FAILED


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL
    default_code = ErrorCode.INTERNAL_ERROR
