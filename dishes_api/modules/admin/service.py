import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient

from dishes_api.config.account_config import AccountConfig
from dishes_api.core.envelope import ServiceResult, handle_error, handle_success, service_operation
from dishes_api.core.errors import InternalError, NotFoundError
from dishes_api.core.pagination import DEFAULT_PAGE_SIZE, clamp_pagination, sanitize_search
from dishes_api.core.validation import validate_role, validate_user_id
from dishes_api.core.workflow import CascadeStep, run_cascade
from dishes_api.database.supabase_client import is_no_rows
from dishes_api.modules.users.models import Tables

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, supabase: AsyncClient, config: Optional[AccountConfig] = None):
        self.supabase = supabase
        self.config = config or AccountConfig()

    @service_operation()
    async def get_all_users(self, page: Any = 1, limit: Any = DEFAULT_PAGE_SIZE, search: str = "") -> ServiceResult:
        """One page of profiles, newest first, optionally filtered by name, tag or email"""
        page_num, limit_num, offset = clamp_pagination(page, limit)

        query = self.supabase.table(Tables.PROFILES)\
            .select("*", count="exact")\
            .order("created_at", desc=True)\
            .range(offset, offset + limit_num - 1)

        term = sanitize_search(search)
        if term:
            query = query.or_(
                f"full_name.ilike.%{term}%,profile_tag.ilike.%{term}%,email.ilike.%{term}%"
            )

        result = await query.execute()
        total = result.count or 0
        return handle_success({
            "users": result.data or [],
            "pagination": {
                "page": page_num,
                "limit": limit_num,
                "total": total,
                "total_pages": math.ceil(total / limit_num),
            },
        })

    @service_operation(log_fields=("user_id",))
    async def get_user_details(self, user_id: str) -> ServiceResult:
        validate_user_id(user_id)
        try:
            result = await self.supabase.table(Tables.PROFILES)\
                .select("*")\
                .eq("id", user_id)\
                .single()\
                .execute()
        except APIError as e:
            if is_no_rows(e):
                raise NotFoundError("User not found", context={"user_id": user_id})
            raise
        if not result.data:
            raise NotFoundError("User not found", context={"user_id": user_id})
        return handle_success({"user": result.data})

    @service_operation(log_fields=("user_id", "role"))
    async def update_user_role(self, user_id: str, role: str) -> ServiceResult:
        validate_user_id(user_id)
        validate_role(role, self.config)

        existing = await self.supabase.table(Tables.PROFILES)\
            .select("id, role")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        if existing is None or not existing.data:
            raise NotFoundError("No user found with the provided ID", context={"user_id": user_id})

        result = await self.supabase.table(Tables.PROFILES)\
            .update({"role": role, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise NotFoundError("No user found with the provided ID", context={"user_id": user_id})

        logger.info("User role updated successfully", extra={"user_id": user_id, "role": role})
        return handle_success({"user": result.data[0]}, "User role updated successfully")

    async def _owned_ids(self, table: str, user_id: str) -> List[str]:
        result = await self.supabase.table(table)\
            .select("id")\
            .eq("user_id", user_id)\
            .execute()
        return [row["id"] for row in result.data or []]

    def _delete_where(self, table: str, column: str, value: str):
        async def action():
            await self.supabase.table(table).delete().eq(column, value).execute()
        return action

    def _delete_scoped(self, table: str, column: str, owner_table: str, user_id: str):
        """Delete rows of ``table`` whose ``column`` points at rows of ``owner_table`` owned by the user"""
        async def action():
            ids = await self._owned_ids(owner_table, user_id)
            if ids:
                await self.supabase.table(table).delete().in_(column, ids).execute()
        return action

    def deletion_steps(self, user_id: str, admin_client: Optional[AsyncClient] = None) -> List[CascadeStep]:
        """Ordered cleanup for one account: children before parents, auth identity before profile row"""
        steps = [
            CascadeStep("comments", self._delete_where(Tables.COMMENTS, "user_id", user_id)),
            CascadeStep("ratings", self._delete_where(Tables.RATINGS, "user_id", user_id)),
            CascadeStep(
                "collection_dishes",
                self._delete_scoped(Tables.COLLECTION_DISHES, "collection_id", Tables.COLLECTIONS, user_id),
            ),
            CascadeStep("collections", self._delete_where(Tables.COLLECTIONS, "user_id", user_id)),
            CascadeStep(
                "dish_categories",
                self._delete_scoped(Tables.DISH_CATEGORIES, "dish_id", Tables.DISHES, user_id),
            ),
            CascadeStep(
                "dish_ingredients",
                self._delete_scoped(Tables.DISH_INGREDIENTS, "dish_id", Tables.DISHES, user_id),
            ),
            CascadeStep(
                "dish_steps",
                self._delete_scoped(Tables.DISH_STEPS, "dish_id", Tables.DISHES, user_id),
            ),
            CascadeStep("dishes", self._delete_where(Tables.DISHES, "user_id", user_id)),
        ]

        if admin_client is not None:
            async def delete_auth_identity():
                await admin_client.auth.admin.delete_user(user_id)
            steps.append(CascadeStep("auth_user", delete_auth_identity, critical=True))

        steps.append(CascadeStep(
            "profile",
            self._delete_where(Tables.PROFILES, "id", user_id),
            critical=True,
            tolerate=is_no_rows,
        ))
        return steps

    @service_operation(default_code="Database error deleting user", log_fields=("user_id",))
    async def delete_user_by_admin(self, user_id: str, admin_client: Optional[AsyncClient] = None) -> ServiceResult:
        """Remove an account and everything that references it.

        Child-table steps are best-effort: their failures are returned as
        ``warnings`` and may leave orphaned rows. Only the auth identity and the
        profile row deletions abort the operation.
        """
        validate_user_id(user_id)

        try:
            existing = await self.supabase.table(Tables.PROFILES)\
                .select("id, email")\
                .eq("id", user_id)\
                .single()\
                .execute()
            existing_user = existing.data
        except APIError as e:
            if not is_no_rows(e):
                raise
            existing_user = None
        if not existing_user:
            raise NotFoundError("User not found", context={"user_id": user_id})

        outcome = await run_cascade(self.deletion_steps(user_id, admin_client), context={"user_id": user_id})

        if not outcome.ok:
            code = "Unable to delete user account" if outcome.failed_step == "auth_user" else "Database error deleting user"
            raise InternalError(
                str(outcome.error),
                code=code,
                context={"user_id": user_id, "step": outcome.failed_step, "user_email": existing_user.get("email")},
            )

        logger.info(
            "User and all related data deleted successfully by admin",
            extra={"user_id": user_id, "user_email": existing_user.get("email"), "warnings": len(outcome.warnings)},
        )
        return handle_success(
            {"warnings": [{"step": w.step, "error": w.error} for w in outcome.warnings]},
            "User and all related data deleted successfully",
        )

    @service_operation()
    async def get_system_stats(self) -> ServiceResult:
        """Profile total and role distribution, read concurrently"""
        users_result, role_stats_result = await asyncio.gather(
            self.supabase.table(Tables.PROFILES).select("id", count="exact", head=True).execute(),
            self.supabase.table(Tables.PROFILES).select("role").execute(),
            return_exceptions=True,
        )

        if isinstance(users_result, BaseException):
            return handle_error(InternalError(str(users_result), code="Unable to fetch system stats"), logger)
        if isinstance(role_stats_result, BaseException):
            return handle_error(InternalError(str(role_stats_result), code="Unable to fetch role stats"), logger)

        role_counts: Dict[str, int] = {}
        for row in role_stats_result.data or []:
            role = row.get("role")
            role_counts[role] = role_counts.get(role, 0) + 1

        return handle_success({
            "stats": {
                "total_users": users_result.count or 0,
                "role_distribution": role_counts,
                "generated_at": datetime.now(timezone.utc).isoformat(),
            }
        })
