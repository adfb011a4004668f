"""
Synchronous pre-condition checks run before any external call.
"""

import re
from typing import Any

from dishes_api.config.account_config import AccountConfig
from dishes_api.core.errors import ErrorCode, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_user_id(user_id: Any) -> None:
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("Valid user ID is required")


def validate_email(email: Any) -> None:
    if not email or not isinstance(email, str) or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Valid email is required")


def validate_role(role: Any, config: AccountConfig) -> None:
    if role not in config.role_values:
        raise ValidationError(
            f"Role must be one of: {', '.join(config.role_values)}",
            code=ErrorCode.INVALID_ROLE,
        )


def validate_image_file(content: bytes, mimetype: str, config: AccountConfig) -> None:
    if not content:
        raise ValidationError("Image file is required", code=ErrorCode.INVALID_FILE_TYPE)
    if (mimetype or "").lower() not in config.allowed_mime_types:
        raise ValidationError("Only JPG, PNG and WebP images are allowed", code=ErrorCode.INVALID_FILE_TYPE)
    if len(content) > config.max_file_size_bytes:
        limit_mb = config.max_file_size_bytes // (1024 * 1024)
        raise ValidationError(f"Image size must be less than {limit_mb}MB", code=ErrorCode.FILE_TOO_LARGE)


def validate_new_password(current_password: Any, new_password: Any, config: AccountConfig) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    if len(new_password) < config.min_password_length:
        raise ValidationError(
            f"New password must be at least {config.min_password_length} characters long"
        )
