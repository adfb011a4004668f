"""Unit tests for DishService and the derived display fields."""

from __future__ import annotations

import pytest

from dishes_api.core.errors import ErrorCode, ErrorKind
from dishes_api.modules.dishes.derived import (
    flatten_categories,
    likes_count,
    total_cooking_time,
    with_derived_fields,
)
from dishes_api.modules.dishes.service import DishService
from tests.conftest import ALICE, CAROL
from tests.fakes import FakeSupabase


pytestmark = pytest.mark.unit


class TestDerivedFields:
    """Tests for the pure helpers in dishes.derived."""

    def test_total_cooking_time_skips_missing_durations(self) -> None:
        steps = [{"duration_minutes": 40}, {"duration_minutes": None}, {"duration_minutes": "5"}, {}]

        assert total_cooking_time(steps) == 45

    def test_total_cooking_time_of_nothing(self) -> None:
        assert total_cooking_time(None) == 0
        assert total_cooking_time([]) == 0

    def test_likes_count_only_counts_ones(self) -> None:
        ratings = [{"rating": 1}, {"rating": "1"}, {"rating": 0}, {"rating": -1}, {}]

        assert likes_count(ratings) == 2

    def test_flatten_categories_accepts_join_and_plain_rows(self) -> None:
        relations = [
            {"categories": {"id": "c1", "name": "Soup"}},
            {"dish_categories": {"id": "c2", "name": "Dessert"}},
            {"id": "c3", "name": "Vegan"},
            {"categories": None},
            "broken",
        ]

        assert [c["name"] for c in flatten_categories(relations)] == ["Soup", "Dessert", "Vegan"]

    def test_with_derived_fields(self) -> None:
        dish = {
            "id": "d1",
            "steps": [{"duration_minutes": 10}],
            "ratings": [{"rating": 1}],
            "categories": [{"categories": {"id": "c1", "name": "Soup"}}],
        }

        derived = with_derived_fields(dish)

        assert derived["total_cooking_time"] == 10
        assert derived["likes_count"] == 1
        assert derived["categories"] == [{"id": "c1", "name": "Soup"}]
        assert "total_cooking_time" not in dish

    def test_zero_time_as_none_for_lists(self) -> None:
        assert with_derived_fields({"steps": []}, empty_time_as_none=True)["total_cooking_time"] is None
        assert with_derived_fields({"steps": []})["total_cooking_time"] == 0


class TestReadDishes:
    """Tests for get_dish, list_user_dishes and list_dishes."""

    async def test_get_dish(self, dish_service: DishService) -> None:
        result = await dish_service.get_dish("d1")

        assert result.success is True
        assert result.data["dish"]["title"] == "Borscht"
        assert result.data["dish"]["likes_count"] == 0

    async def test_get_unknown_dish(self, dish_service: DishService) -> None:
        result = await dish_service.get_dish("nope")

        assert result.kind is ErrorKind.NOT_FOUND
        assert result.error == ErrorCode.DISH_NOT_FOUND

    async def test_list_user_dishes_includes_every_status(self, dish_service: DishService) -> None:
        result = await dish_service.list_user_dishes(ALICE)

        assert [d["id"] for d in result.data["dishes"]] == ["d2", "d1"]
        assert result.data["dishes"][0]["total_cooking_time"] is None

    async def test_list_user_dishes_filters(self, dish_service: DishService) -> None:
        by_status = await dish_service.list_user_dishes(ALICE, status="draft")
        by_search = await dish_service.list_user_dishes(ALICE, search="beet")

        assert [d["id"] for d in by_status.data["dishes"]] == ["d2"]
        assert [d["id"] for d in by_search.data["dishes"]] == ["d1"]

    async def test_list_user_dishes_rejects_unknown_status(
        self, dish_service: DishService, supabase: FakeSupabase
    ) -> None:
        result = await dish_service.list_user_dishes(ALICE, status="archived")

        assert result.error == ErrorCode.INVALID_STATUS
        assert supabase.executed == []

    async def test_list_dishes_only_approved(self, dish_service: DishService) -> None:
        result = await dish_service.list_dishes()

        assert [d["id"] for d in result.data["dishes"]] == ["d1"]
        assert result.data["pagination"]["total"] == 1

    async def test_list_dishes_clamps_pagination(self, dish_service: DishService) -> None:
        result = await dish_service.list_dishes(page=-3, limit=1000)

        assert result.data["pagination"]["page"] == 1
        assert result.data["pagination"]["limit"] == 100

    async def test_list_dishes_by_category(self, dish_service: DishService) -> None:
        soups = await dish_service.list_dishes(category_id="c1")
        # c2 only holds a pending dish
        pending_only = await dish_service.list_dishes(category_id="c2")
        empty = await dish_service.list_dishes(category_id="c9")

        assert [d["id"] for d in soups.data["dishes"]] == ["d1"]
        assert pending_only.data["dishes"] == []
        assert empty.data["pagination"]["total_pages"] == 0


class TestDishStatus:
    """Tests for submit_for_review and moderate_dish."""

    async def test_submit_draft(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.submit_for_review("d2", ALICE)

        assert result.success is True
        assert next(d for d in supabase.rows("dishes") if d["id"] == "d2")["status"] == "pending"

    async def test_submit_requires_owner(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.submit_for_review("d2", CAROL)

        assert result.kind is ErrorKind.VALIDATION
        assert result.error == ErrorCode.FORBIDDEN
        assert ("dishes", "update") not in supabase.ops()

    async def test_submit_approved_dish_rejected(self, dish_service: DishService) -> None:
        result = await dish_service.submit_for_review("d1", ALICE)

        assert result.error == ErrorCode.INVALID_STATUS

    async def test_approve_pending(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.moderate_dish("d3", "approve")

        assert result.success is True
        assert next(d for d in supabase.rows("dishes") if d["id"] == "d3")["status"] == "approved"

    async def test_reject_needs_reason(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.moderate_dish("d3", "reject", reason="  ")

        assert result.kind is ErrorKind.VALIDATION
        assert supabase.executed == []

    async def test_reject_stores_reason(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.moderate_dish("d3", "reject", reason=" Needs photos ")

        dish = next(d for d in supabase.rows("dishes") if d["id"] == "d3")
        assert result.success is True
        assert dish["status"] == "rejected"
        assert dish["rejection_reason"] == "Needs photos"

    async def test_resubmit_after_rejection_clears_reason(
        self, dish_service: DishService, supabase: FakeSupabase
    ) -> None:
        await dish_service.moderate_dish("d3", "reject", reason="Needs photos")

        result = await dish_service.submit_for_review("d3", CAROL)

        dish = next(d for d in supabase.rows("dishes") if d["id"] == "d3")
        assert result.success is True
        assert dish["status"] == "pending"
        assert dish["rejection_reason"] is None

    async def test_only_pending_can_be_moderated(self, dish_service: DishService) -> None:
        result = await dish_service.moderate_dish("d2", "approve")

        assert result.error == ErrorCode.INVALID_STATUS

    async def test_unknown_action(self, dish_service: DishService) -> None:
        result = await dish_service.moderate_dish("d3", "publish")

        assert result.kind is ErrorKind.VALIDATION


class TestDeleteDish:
    """Tests for delete_dish."""

    async def test_deletes_dish_and_children(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.delete_dish("d1", ALICE)

        assert result.success is True
        assert result.data["warnings"] == []
        assert all(d["id"] != "d1" for d in supabase.rows("dishes"))
        for table in ("dish_categories", "dish_ingredients", "dish_steps", "dish_ratings", "comments", "collection_dishes"):
            assert all(r["dish_id"] != "d1" for r in supabase.rows(table)), table

    async def test_child_failure_is_a_warning(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        supabase.fail_on("comments", "delete", RuntimeError("locked"))

        result = await dish_service.delete_dish("d1", ALICE)

        assert result.success is True
        assert result.data["warnings"] == [{"step": "comments", "error": "locked"}]
        assert all(d["id"] != "d1" for d in supabase.rows("dishes"))

    async def test_only_author_can_delete(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        result = await dish_service.delete_dish("d1", CAROL)

        assert result.error == ErrorCode.FORBIDDEN
        assert [op for _, op in supabase.ops()] == ["select"]

    async def test_dish_row_failure_is_fatal(self, dish_service: DishService, supabase: FakeSupabase) -> None:
        supabase.fail_when(lambda q: q.table == "dishes" and q.op == "delete", RuntimeError("fk violation"))

        result = await dish_service.delete_dish("d1", ALICE)

        assert result.success is False
        assert result.error == "Unable to delete dish"
