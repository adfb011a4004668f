from fastapi import APIRouter, Depends, HTTPException
from typing import Dict, Optional

from dishes_api.core.dependencies import get_current_user_id, get_dish_service
from dishes_api.core.responses import envelope_response
from dishes_api.modules.dishes.schemas import StatusChange
from dishes_api.modules.dishes.service import DishService

router = APIRouter(prefix="/dishes", tags=["dishes"])


@router.get("")
async def list_dishes(
    page: int = 1,
    limit: int = 10,
    search: str = "",
    category_id: Optional[str] = None,
    service: DishService = Depends(get_dish_service)
):
    """Approved dishes, newest first"""
    return envelope_response(await service.list_dishes(page=page, limit=limit, search=search, category_id=category_id))


@router.get("/my-dishes")
async def list_my_dishes(
    search: str = "",
    status: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: DishService = Depends(get_dish_service)
):
    return envelope_response(await service.list_user_dishes(current_user["id"], search=search, status=status))


@router.get("/{dish_id}")
async def get_dish(
    dish_id: str,
    service: DishService = Depends(get_dish_service)
):
    return envelope_response(await service.get_dish(dish_id))


@router.patch("/{dish_id}/status")
async def change_dish_status(
    dish_id: str,
    body: StatusChange,
    current_user: Dict = Depends(get_current_user_id),
    service: DishService = Depends(get_dish_service)
):
    if body.action != "submit_for_review":
        raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")
    return envelope_response(await service.submit_for_review(dish_id, current_user["id"]))


@router.delete("/{dish_id}")
async def delete_dish(
    dish_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: DishService = Depends(get_dish_service)
):
    return envelope_response(await service.delete_dish(dish_id, current_user["id"]))
