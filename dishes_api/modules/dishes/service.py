import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient

from dishes_api.core.envelope import ServiceResult, handle_success, service_operation
from dishes_api.core.errors import ErrorCode, InternalError, NotFoundError, ValidationError
from dishes_api.core.workflow import CascadeStep, run_cascade
from dishes_api.database.supabase_client import is_no_rows
from dishes_api.core.pagination import DEFAULT_PAGE_SIZE, clamp_pagination, sanitize_search
from dishes_api.modules.dishes.derived import with_derived_fields
from dishes_api.modules.dishes.schemas import DishStatus, ModerationAction
from dishes_api.modules.users.models import Tables

logger = logging.getLogger(__name__)

DISH_DETAIL_COLUMNS = (
    "*, author:profiles(id, full_name, avatar_url, profile_tag), "
    "categories:dish_categories(categories(id, name)), "
    "ingredients:dish_ingredients(*), steps:dish_steps(*), ratings:dish_ratings(rating)"
)
DISH_LIST_COLUMNS = (
    "*, categories:dish_categories(categories(id, name)), "
    "steps:dish_steps(duration_minutes), ratings:dish_ratings(rating)"
)

# Tables holding rows keyed by dish_id, removed before the dish itself
DISH_CHILD_TABLES = (
    Tables.DISH_CATEGORIES,
    Tables.DISH_INGREDIENTS,
    Tables.DISH_STEPS,
    Tables.RATINGS,
    Tables.COMMENTS,
    Tables.COLLECTION_DISHES,
)

SUBMITTABLE_STATUSES = (DishStatus.DRAFT.value, DishStatus.REJECTED.value)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DishService:
    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    async def _get_dish_row(self, dish_id: str, columns: str = "id, user_id, status") -> Dict[str, Any]:
        if not dish_id:
            raise ValidationError("Dish ID is required")
        try:
            result = await self.supabase.table(Tables.DISHES)\
                .select(columns)\
                .eq("id", dish_id)\
                .single()\
                .execute()
        except APIError as e:
            if is_no_rows(e):
                raise NotFoundError("Dish not found", code=ErrorCode.DISH_NOT_FOUND, context={"dish_id": dish_id})
            raise
        if not result.data:
            raise NotFoundError("Dish not found", code=ErrorCode.DISH_NOT_FOUND, context={"dish_id": dish_id})
        return result.data

    async def _get_owned_dish(self, dish_id: str, user_id: str) -> Dict[str, Any]:
        dish = await self._get_dish_row(dish_id)
        if dish.get("user_id") != user_id:
            raise ValidationError(
                "Only the author can change this dish",
                code=ErrorCode.FORBIDDEN,
                context={"dish_id": dish_id, "user_id": user_id},
            )
        return dish

    @service_operation(default_code="Unable to fetch dish", log_fields=("dish_id",))
    async def get_dish(self, dish_id: str) -> ServiceResult:
        dish = await self._get_dish_row(dish_id, DISH_DETAIL_COLUMNS)
        return handle_success({"dish": with_derived_fields(dish)})

    @service_operation(default_code="Unable to fetch dishes", log_fields=("user_id", "status"))
    async def list_user_dishes(self, user_id: str, search: str = "", status: Optional[str] = None) -> ServiceResult:
        """The author's own dishes in every status, newest first"""
        if not user_id:
            raise ValidationError("Valid user ID is required")
        query = self.supabase.table(Tables.DISHES)\
            .select(DISH_LIST_COLUMNS)\
            .eq("user_id", user_id)

        if status:
            if status not in {s.value for s in DishStatus}:
                raise ValidationError(f"Unknown dish status: {status}", code=ErrorCode.INVALID_STATUS)
            query = query.eq("status", status)

        term = sanitize_search(search)
        if term:
            query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%")

        result = await query.order("created_at", desc=True).execute()
        dishes = [with_derived_fields(d, empty_time_as_none=True) for d in result.data or []]
        return handle_success({"dishes": dishes})

    @service_operation(default_code="Unable to fetch dishes")
    async def list_dishes(
        self,
        page: Any = 1,
        limit: Any = DEFAULT_PAGE_SIZE,
        search: str = "",
        category_id: Optional[str] = None,
    ) -> ServiceResult:
        """Approved dishes for the public catalogue"""
        page_num, limit_num, offset = clamp_pagination(page, limit)

        query = self.supabase.table(Tables.DISHES)\
            .select(DISH_LIST_COLUMNS, count="exact")\
            .eq("status", DishStatus.APPROVED.value)

        if category_id:
            links = await self.supabase.table(Tables.DISH_CATEGORIES)\
                .select("dish_id")\
                .eq("category_id", category_id)\
                .execute()
            dish_ids: List[str] = [row["dish_id"] for row in links.data or []]
            if not dish_ids:
                return handle_success({
                    "dishes": [],
                    "pagination": {"page": page_num, "limit": limit_num, "total": 0, "total_pages": 0},
                })
            query = query.in_("id", dish_ids)

        term = sanitize_search(search)
        if term:
            query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%")

        result = await query.order("created_at", desc=True)\
            .range(offset, offset + limit_num - 1)\
            .execute()
        total = result.count or 0
        return handle_success({
            "dishes": [with_derived_fields(d, empty_time_as_none=True) for d in result.data or []],
            "pagination": {
                "page": page_num,
                "limit": limit_num,
                "total": total,
                "total_pages": math.ceil(total / limit_num),
            },
        })

    @service_operation(default_code="Unable to submit dish for review", log_fields=("dish_id", "user_id"))
    async def submit_for_review(self, dish_id: str, user_id: str) -> ServiceResult:
        dish = await self._get_owned_dish(dish_id, user_id)
        if dish.get("status") not in SUBMITTABLE_STATUSES:
            raise ValidationError(
                f"Dish in status '{dish.get('status')}' cannot be submitted for review",
                code=ErrorCode.INVALID_STATUS,
            )

        result = await self.supabase.table(Tables.DISHES)\
            .update({"status": DishStatus.PENDING.value, "rejection_reason": None, "updated_at": _now()})\
            .eq("id", dish_id)\
            .execute()
        if not result.data:
            raise NotFoundError("Dish not found", code=ErrorCode.DISH_NOT_FOUND)

        logger.info("Dish submitted for review", extra={"dish_id": dish_id, "user_id": user_id})
        return handle_success({"dish": result.data[0]}, "Dish submitted for review")

    @service_operation(default_code="Unable to moderate dish", log_fields=("dish_id", "action"))
    async def moderate_dish(self, dish_id: str, action: str, reason: Optional[str] = None) -> ServiceResult:
        """Approve or reject a pending dish; rejecting needs a reason"""
        try:
            action = ModerationAction(action)
        except ValueError:
            raise ValidationError(f"Unknown moderation action: {action}")
        if action is ModerationAction.REJECT and not (reason and reason.strip()):
            raise ValidationError("Rejection reason is required")

        dish = await self._get_dish_row(dish_id)
        if dish.get("status") != DishStatus.PENDING.value:
            raise ValidationError("Only dishes pending review can be moderated", code=ErrorCode.INVALID_STATUS)

        if action is ModerationAction.APPROVE:
            update = {"status": DishStatus.APPROVED.value, "rejection_reason": None}
        else:
            update = {"status": DishStatus.REJECTED.value, "rejection_reason": reason.strip()}
        update["updated_at"] = _now()

        result = await self.supabase.table(Tables.DISHES).update(update).eq("id", dish_id).execute()
        if not result.data:
            raise NotFoundError("Dish not found", code=ErrorCode.DISH_NOT_FOUND)

        logger.info("Dish moderated", extra={"dish_id": dish_id, "action": action.value})
        return handle_success({"dish": result.data[0]}, f"Dish {update['status']}")

    def _delete_children(self, table: str, dish_id: str):
        async def action():
            await self.supabase.table(table).delete().eq("dish_id", dish_id).execute()
        return action

    @service_operation(default_code="Unable to delete dish", log_fields=("dish_id", "user_id"))
    async def delete_dish(self, dish_id: str, user_id: str) -> ServiceResult:
        await self._get_owned_dish(dish_id, user_id)

        async def delete_dish_row():
            await self.supabase.table(Tables.DISHES).delete().eq("id", dish_id).execute()

        steps = [CascadeStep(table, self._delete_children(table, dish_id)) for table in DISH_CHILD_TABLES]
        steps.append(CascadeStep("dish", delete_dish_row, critical=True, tolerate=is_no_rows))

        outcome = await run_cascade(steps, context={"dish_id": dish_id, "user_id": user_id})
        if not outcome.ok:
            raise InternalError(str(outcome.error), code="Unable to delete dish", context={"dish_id": dish_id})

        logger.info("Dish deleted", extra={"dish_id": dish_id, "user_id": user_id})
        return handle_success(
            {"warnings": [{"step": w.step, "error": w.error} for w in outcome.warnings]},
            "Dish deleted successfully",
        )
