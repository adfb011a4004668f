from fastapi import APIRouter, Depends, HTTPException, status
from supabase import AsyncClient
from typing import Dict, Optional

from dishes_api.core.dependencies import (
    get_admin_client, get_admin_service, get_dish_service, require_admin,
)
from dishes_api.core.responses import envelope_response
from dishes_api.modules.admin.schemas import DishModeration, RoleUpdate
from dishes_api.modules.admin.service import AdminService
from dishes_api.modules.dishes.service import DishService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users(
    page: int = 1,
    limit: int = 10,
    search: str = "",
    admin: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Paginated profile listing with optional name/tag/email search"""
    return envelope_response(await service.get_all_users(page=page, limit=limit, search=search))


@router.get("/users/{user_id}")
async def get_user_details(
    user_id: str,
    admin: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return envelope_response(await service.get_user_details(user_id))


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return envelope_response(await service.update_user_role(user_id, body.role))


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    admin_client: Optional[AsyncClient] = Depends(get_admin_client)
):
    """Delete the account and all rows that reference it"""
    if admin["id"] == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Administrators cannot delete themselves")
    return envelope_response(await service.delete_user_by_admin(user_id, admin_client))


@router.get("/stats")
async def get_system_stats(
    admin: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return envelope_response(await service.get_system_stats())


@router.patch("/dishes/{dish_id}/moderate")
async def moderate_dish(
    dish_id: str,
    body: DishModeration,
    admin: Dict = Depends(require_admin),
    service: DishService = Depends(get_dish_service)
):
    return envelope_response(await service.moderate_dish(dish_id, body.action.value, body.reason))
