from fastapi import APIRouter, Depends, File, UploadFile
from typing import Dict

from dishes_api.core.dependencies import get_current_user_id, get_user_service
from dishes_api.core.responses import envelope_response
from dishes_api.modules.users.schemas import PasswordChange, ProfileUpdate
from dishes_api.modules.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_my_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    """Profile of the authenticated user"""
    return envelope_response(await service.get_profile(current_user["id"]))


@router.put("/me")
async def update_my_profile(
    body: ProfileUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    result = await service.update_profile(
        current_user["id"],
        body.email,
        full_name=body.full_name,
        profile_tag=body.profile_tag,
        avatar_url=body.avatar_url,
    )
    return envelope_response(result)


@router.get("/me/stats")
async def get_my_stats(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return envelope_response(await service.get_user_stats(current_user))


@router.post("/me/password")
async def change_my_password(
    body: PasswordChange,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    """Re-verify the current password, then set the new one"""
    result = await service.change_password(current_user["email"], body.current_password, body.new_password)
    return envelope_response(result)


@router.post("/me/avatar")
async def upload_my_avatar(
    file: UploadFile = File(...),
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    content = await file.read()
    result = await service.upload_avatar(current_user["id"], content, file.content_type or "", file.filename)
    return envelope_response(result)


@router.get("/by-tag/{profile_tag}")
async def get_user_by_tag(
    profile_tag: str,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return envelope_response(await service.get_user_by_tag(profile_tag))


@router.get("/{user_id}/public")
async def get_public_profile(
    user_id: str,
    service: UserService = Depends(get_user_service)
):
    return envelope_response(await service.get_public_profile(user_id))
