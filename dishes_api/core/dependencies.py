"""
Core dependencies for route protection and service wiring
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import AsyncClient
from typing import Optional
import logging

from dishes_api.config import AccountConfig, UserRole, settings
from dishes_api.database.supabase_client import create_auth_client, get_service_supabase, get_supabase
from dishes_api.modules.admin.service import AdminService
from dishes_api.modules.auth.service import AuthService
from dishes_api.modules.dishes.service import DishService
from dishes_api.modules.notifications.email_service import get_notification_service
from dishes_api.modules.users.avatar_storage import get_avatar_storage
from dishes_api.modules.users.service import UserService

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_account_config() -> AccountConfig:
    return AccountConfig.from_settings(settings)


def get_auth_service(supabase: AsyncClient = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return await auth_service.get_current_user(token)


async def require_admin(
    user_data: dict = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Dependency that only lets profiles with the admin role through"""
    try:
        role = await auth_service.get_role(user_data["id"])
    except Exception as e:
        logger.error(f"Error getting user role: {e}")
        role = None
    if role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required"
        )
    return user_data


def get_user_service(
    supabase: AsyncClient = Depends(get_supabase),
    config: AccountConfig = Depends(get_account_config),
) -> UserService:
    return UserService(
        supabase,
        config,
        auth_client_factory=create_auth_client,
        email_service=get_notification_service(),
        avatar_storage=get_avatar_storage(supabase),
    )


def get_admin_service(
    supabase: AsyncClient = Depends(get_supabase),
    config: AccountConfig = Depends(get_account_config),
) -> AdminService:
    return AdminService(supabase, config)


def get_dish_service(supabase: AsyncClient = Depends(get_supabase)) -> DishService:
    return DishService(supabase)


async def get_admin_client() -> Optional[AsyncClient]:
    client = await get_service_supabase()
    if client is None:
        logger.warning("Service role key not configured; auth identities will not be deleted")
    return client
