import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient

from dishes_api.config.account_config import AccountConfig
from dishes_api.core.envelope import ServiceResult, handle_success, service_operation
from dishes_api.core.errors import (
    DuplicateError, ErrorCode, InternalError, NotFoundError, UploadFailedError, ValidationError,
)
from dishes_api.core.validation import (
    validate_email, validate_image_file, validate_new_password, validate_user_id,
)
from dishes_api.core.workflow import SagaFailed, SagaStep, run_saga
from dishes_api.database.supabase_client import close_auth_client, is_no_rows
from dishes_api.modules.users.avatar_storage import SupabaseAvatarStorage
from dishes_api.modules.users.models import PUBLIC_PROFILE_COLUMNS, TAG_LOOKUP_COLUMNS, Tables
from dishes_api.modules.users.schemas import UserStats

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserService:
    """Profile and account operations for the signed-in user.

    Every public method returns a ``ServiceResult``; nothing raises past the
    ``service_operation`` boundary.
    """

    def __init__(
        self,
        supabase: AsyncClient,
        config: Optional[AccountConfig] = None,
        auth_client_factory: Optional[Callable[[], Awaitable[AsyncClient]]] = None,
        email_service=None,
        avatar_storage=None,
    ):
        self.supabase = supabase
        self.config = config or AccountConfig()
        # Password re-verification signs in, so it should run on its own client.
        # Without a factory the shared client is used and left open.
        self.auth_client_factory = auth_client_factory
        self.email_service = email_service
        self.avatar_storage = avatar_storage or SupabaseAvatarStorage(supabase)

    async def _check_profile_tag_exists(self, profile_tag: str, exclude_user_id: Optional[str] = None) -> bool:
        query = self.supabase.table(Tables.PROFILES)\
            .select("id")\
            .eq("profile_tag", profile_tag)
        if exclude_user_id:
            query = query.neq("id", exclude_user_id)
        result = await query.limit(1).execute()
        return bool(result.data)

    async def _fetch_single(self, columns: str, column: str, value: str, not_found: NotFoundError) -> Dict[str, Any]:
        try:
            result = await self.supabase.table(Tables.PROFILES)\
                .select(columns)\
                .eq(column, value)\
                .single()\
                .execute()
        except APIError as e:
            if is_no_rows(e):
                raise not_found
            raise
        if not result.data:
            raise not_found
        return result.data

    @service_operation(log_fields=("user_id",))
    async def get_profile(self, user_id: str) -> ServiceResult:
        """Full profile row for ``user_id``"""
        validate_user_id(user_id)
        profile = await self._fetch_single(
            "*", "id", user_id,
            NotFoundError("Profile not found", code=ErrorCode.PROFILE_NOT_FOUND, context={"user_id": user_id}),
        )
        return handle_success({"profile": profile})

    @service_operation(log_fields=("user_id", "profile_tag"))
    async def update_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        profile_tag: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> ServiceResult:
        """Update profile fields.

        The tag check below is advisory: two concurrent updates can both pass it,
        so the unique constraint on profiles.profile_tag is what actually holds.
        """
        validate_user_id(user_id)
        validate_email(email)

        if profile_tag:
            if await self._check_profile_tag_exists(profile_tag, exclude_user_id=user_id):
                raise DuplicateError(
                    "This profile tag is already taken by another user",
                    code=ErrorCode.TAG_EXISTS,
                    context={"user_id": user_id, "profile_tag": profile_tag},
                )

        update_data: Dict[str, Any] = {"email": email, "updated_at": utc_now_iso()}
        # Fields left as None were not sent and keep their stored value
        optional_fields = {"full_name": full_name, "profile_tag": profile_tag, "avatar_url": avatar_url}
        update_data.update({key: value for key, value in optional_fields.items() if value is not None})

        result = await self.supabase.table(Tables.PROFILES)\
            .update(update_data)\
            .eq("id", user_id)\
            .execute()

        if not result.data:
            raise NotFoundError("Profile not found", code=ErrorCode.PROFILE_NOT_FOUND, context={"user_id": user_id})

        logger.info("Profile updated successfully", extra={"user_id": user_id})
        return handle_success({"profile": result.data[0]}, "Profile updated successfully")

    @service_operation(log_fields=("profile_tag",))
    async def get_user_by_tag(self, profile_tag: str) -> ServiceResult:
        if not profile_tag:
            raise ValidationError("Profile tag is required")
        profile = await self._fetch_single(
            TAG_LOOKUP_COLUMNS, "profile_tag", profile_tag,
            NotFoundError("No user found with this profile tag", context={"profile_tag": profile_tag}),
        )
        return handle_success({"profile": profile})

    @service_operation(log_fields=("user_id",))
    async def get_public_profile(self, user_id: str) -> ServiceResult:
        validate_user_id(user_id)
        profile = await self._fetch_single(
            PUBLIC_PROFILE_COLUMNS, "id", user_id,
            NotFoundError("The requested user profile does not exist", context={"user_id": user_id}),
        )
        return handle_success({"profile": profile})

    async def _count(self, label: str, user_id: str, query) -> int:
        try:
            result = await query.execute()
            return result.count or 0
        except Exception as e:
            logger.error(f"Error fetching user {label} count: {str(e)}", extra={"user_id": user_id})
            return 0

    @service_operation()
    async def get_user_stats(self, user: Dict[str, Any]) -> ServiceResult:
        """Dish, like and favourite counts; a failing count is reported as 0"""
        if not user or not user.get("id"):
            raise ValidationError("Valid user object is required")
        user_id = user["id"]

        recipes_created = await self._count(
            "dishes", user_id,
            self.supabase.table(Tables.DISHES).select("id", count="exact", head=True).eq("user_id", user_id),
        )
        likes_given = await self._count(
            "likes", user_id,
            self.supabase.table(Tables.RATINGS)
            .select("id", count="exact", head=True)
            .eq("user_id", user_id)
            .eq("rating", 1),
        )

        favorite_recipes = 0
        try:
            collections = await self.supabase.table(Tables.COLLECTIONS)\
                .select("id")\
                .eq("user_id", user_id)\
                .execute()
            collection_ids = [c["id"] for c in collections.data or []]
            if collection_ids:
                favorite_recipes = await self._count(
                    "favorites", user_id,
                    self.supabase.table(Tables.COLLECTION_DISHES)
                    .select("dish_id", count="exact", head=True)
                    .in_("collection_id", collection_ids),
                )
        except Exception as e:
            logger.error(f"Error fetching user collections: {str(e)}", extra={"user_id": user_id})

        stats = UserStats(
            recipes_created=recipes_created,
            likes_given=likes_given,
            favorite_recipes=favorite_recipes,
            last_login=user.get("last_sign_in_at") or "Unknown",
            email_confirmed=bool(user.get("email_confirmed_at")),
        )
        return handle_success({"stats": stats.model_dump()})

    @service_operation(log_fields=("email",))
    async def change_password(self, email: str, current_password: str, new_password: str) -> ServiceResult:
        validate_email(email)
        validate_new_password(current_password, new_password, self.config)

        if self.auth_client_factory is None:
            await self._replace_password(self.supabase, email, current_password, new_password)
        else:
            auth_client = await self.auth_client_factory()
            try:
                await self._replace_password(auth_client, email, current_password, new_password)
            finally:
                await close_auth_client(auth_client)

        if self.email_service is not None:
            await self._notify_password_changed(email)

        logger.info("Password updated successfully", extra={"email": email})
        return handle_success({}, "Password updated successfully")

    async def _replace_password(
        self, auth_client: AsyncClient, email: str, current_password: str, new_password: str
    ) -> None:
        # Provider detail is never surfaced: any sign-in failure reads as a wrong password
        try:
            auth_response = await auth_client.auth.sign_in_with_password({
                "email": email,
                "password": current_password,
            })
            verified = bool(auth_response and auth_response.user)
        except Exception as e:
            logger.info("Password re-verification failed: %s", e, extra={"email": email})
            verified = False
        if not verified:
            raise ValidationError(
                "Please verify your current password",
                code=ErrorCode.CURRENT_PASSWORD_INCORRECT,
            )

        try:
            await auth_client.auth.update_user({"password": new_password})
        except Exception as e:
            raise InternalError(str(e), code="Unable to update password", context={"email": email})

    async def _notify_password_changed(self, email: str) -> None:
        try:
            profile = await self.supabase.table(Tables.PROFILES)\
                .select("full_name")\
                .eq("email", email)\
                .maybe_single()\
                .execute()
            full_name = profile.data.get("full_name") if profile and profile.data else None
            sent = await self.email_service.send_password_change_notification(email, full_name)
            if sent is False:
                raise RuntimeError("notification service rejected the request")
        except Exception as e:
            logger.warning(
                "Failed to send password change notification: %s", e,
                extra={"event": "side_effect_failed", "side_effect": "password_change_email", "email": email},
            )

    def _avatar_object_name(self, user_id: str, mimetype: str) -> str:
        extension = mimetype.split("/")[1]
        return f"{user_id}-{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"

    @service_operation(default_code="Failed to upload avatar", log_fields=("user_id", "filename"))
    async def upload_avatar(self, user_id: str, content: bytes, mimetype: str, filename: Optional[str] = None) -> ServiceResult:
        """Store a new avatar object and point the profile at it.

        Upload and profile write are two steps; when the write fails the object
        is removed again on a best-effort basis, so a double failure can leave an
        orphaned object in the bucket.
        """
        validate_user_id(user_id)
        validate_image_file(content, mimetype, self.config)

        object_name = self._avatar_object_name(user_id, mimetype.lower())
        logger.info(
            "Starting avatar upload",
            extra={"user_id": user_id, "upload_name": filename, "file_size": len(content), "mimetype": mimetype},
        )

        async def upload():
            return await self.avatar_storage.upload_file(content, object_name, mimetype)

        async def remove_uploaded():
            await self.avatar_storage.delete_file(object_name)

        async def attach_to_profile():
            public_url = await self.avatar_storage.get_public_url(object_name)
            if not public_url:
                raise UploadFailedError("Failed to get public URL", code="Failed to get avatar URL")
            result = await self.supabase.table(Tables.PROFILES)\
                .update({"avatar_url": public_url, "updated_at": utc_now_iso()})\
                .eq("id", user_id)\
                .execute()
            if not result.data:
                raise NotFoundError("Profile not found", code=ErrorCode.PROFILE_NOT_FOUND)
            return public_url, result.data[0]

        try:
            results = await run_saga(
                [
                    SagaStep("upload", upload, rollback=remove_uploaded),
                    SagaStep("attach", attach_to_profile),
                ],
                context={"user_id": user_id, "object_name": object_name},
            )
        except SagaFailed as failure:
            if failure.step == "upload":
                raise UploadFailedError(
                    str(failure.error),
                    code="Failed to upload avatar to storage",
                    context={"user_id": user_id, "object_name": object_name},
                )
            if isinstance(failure.error, UploadFailedError):
                raise failure.error
            raise InternalError(
                str(failure.error),
                code="Failed to update profile with avatar",
                context={"user_id": user_id, "object_name": object_name},
            )

        public_url, profile = results["attach"]
        logger.info("Avatar uploaded successfully", extra={"user_id": user_id, "public_url": public_url})
        return handle_success({"avatar_url": public_url, "profile": profile}, "Avatar uploaded successfully")
