from fastapi import APIRouter, Depends
from typing import Dict

from dishes_api.core.dependencies import get_auth_service, get_current_user_id
from dishes_api.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    """Get current authenticated user and their role (for frontend UI)."""
    role = await service.get_role(current_user["id"])
    return {**current_user, "role": role}
