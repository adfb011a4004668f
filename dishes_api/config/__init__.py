from dishes_api.config.settings import settings, Settings
from dishes_api.config.account_config import AccountConfig, UserRole

__all__ = ["settings", "Settings", "AccountConfig", "UserRole"]
