from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for deleting auth identities

    # Accounts
    avatar_bucket: str = "avatars"
    avatar_max_file_size_bytes: int = 5 * 1024 * 1024
    avatar_allowed_mime_types: str = "image/jpeg,image/jpg,image/png,image/webp"
    min_password_length: int = 6

    # AWS S3 avatar backend (will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    # Notification service (password change e-mails)
    notification_service_url: Optional[str] = None
    notification_timeout_seconds: float = 5.0

    # App
    app_name: str = "dishes-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def s3_configured(self) -> bool:
        return all([self.aws_access_key_id, self.aws_secret_access_key, self.s3_bucket_name])

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_avatar_mime_types(self) -> List[str]:
        return [m.strip().lower() for m in self.avatar_allowed_mime_types.split(",") if m.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
