"""
Immutable account rules handed to the services at construction time.
"""

from enum import Enum
from typing import FrozenSet, Type

from pydantic import BaseModel, ConfigDict

from dishes_api.config.settings import Settings

DEFAULT_MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024
DEFAULT_ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
DEFAULT_MIN_PASSWORD_LENGTH = 6


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AccountConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    allowed_mime_types: FrozenSet[str] = DEFAULT_ALLOWED_MIME_TYPES
    roles: Type[UserRole] = UserRole
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH

    @property
    def role_values(self) -> list:
        return [role.value for role in self.roles]

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccountConfig":
        return cls(
            max_file_size_bytes=settings.avatar_max_file_size_bytes,
            allowed_mime_types=frozenset(settings.get_avatar_mime_types()),
            min_password_length=settings.min_password_length,
        )
