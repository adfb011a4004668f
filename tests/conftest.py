"""Shared fixtures: a seeded in-memory Supabase and services built on it."""

from __future__ import annotations

import pytest

from dishes_api.config import AccountConfig
from dishes_api.modules.admin.service import AdminService
from dishes_api.modules.auth.service import clear_auth_cache
from dishes_api.modules.dishes.service import DishService
from dishes_api.modules.users.service import UserService
from tests.fakes import FakeSupabase

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
CAROL = "33333333-3333-3333-3333-333333333333"


def seed_tables() -> dict:
    return {
        "profiles": [
            {
                "id": ALICE, "email": "alice@example.com", "full_name": "Alice Cook",
                "profile_tag": "alice", "avatar_url": None, "role": "user",
                "created_at": "2024-01-01T00:00:00+00:00", "updated_at": None,
            },
            {
                "id": BOB, "email": "bob@example.com", "full_name": "Bob Baker",
                "profile_tag": "bobby", "avatar_url": None, "role": "admin",
                "created_at": "2024-02-01T00:00:00+00:00", "updated_at": None,
            },
            {
                "id": CAROL, "email": "carol@example.org", "full_name": "Carol Chef",
                "profile_tag": "carol", "avatar_url": None, "role": "user",
                "created_at": "2024-03-01T00:00:00+00:00", "updated_at": None,
            },
        ],
        "dishes": [
            {"id": "d1", "user_id": ALICE, "title": "Borscht", "description": "Beet soup",
             "status": "approved", "created_at": "2024-01-05", "rejection_reason": None},
            {"id": "d2", "user_id": ALICE, "title": "Varenyky", "description": "Dumplings with cherries",
             "status": "draft", "created_at": "2024-01-06", "rejection_reason": None},
            {"id": "d3", "user_id": CAROL, "title": "Pancakes", "description": "Fluffy",
             "status": "pending", "created_at": "2024-03-05", "rejection_reason": None},
        ],
        "dish_ingredients": [
            {"id": "i1", "dish_id": "d1", "name": "beet"},
            {"id": "i2", "dish_id": "d2", "name": "flour"},
            {"id": "i3", "dish_id": "d3", "name": "milk"},
        ],
        "dish_steps": [
            {"id": "s1", "dish_id": "d1", "description": "Boil", "duration_minutes": 40},
            {"id": "s2", "dish_id": "d1", "description": "Serve", "duration_minutes": None},
            {"id": "s3", "dish_id": "d3", "description": "Fry", "duration_minutes": 10},
        ],
        "dish_categories": [
            {"dish_id": "d1", "category_id": "c1"},
            {"dish_id": "d3", "category_id": "c2"},
        ],
        "dish_ratings": [
            {"id": "r1", "user_id": ALICE, "dish_id": "d3", "rating": 1},
            {"id": "r2", "user_id": CAROL, "dish_id": "d1", "rating": 1},
            {"id": "r3", "user_id": ALICE, "dish_id": "d1", "rating": 0},
        ],
        "comments": [
            {"id": "cm1", "user_id": ALICE, "dish_id": "d3", "content": "Yum"},
            {"id": "cm2", "user_id": CAROL, "dish_id": "d1", "content": "Great"},
        ],
        "collections": [
            {"id": "col1", "user_id": ALICE, "name": "Favourites"},
            {"id": "col2", "user_id": CAROL, "name": "Weekend"},
        ],
        "collection_dishes": [
            {"collection_id": "col1", "dish_id": "d3"},
            {"collection_id": "col1", "dish_id": "d1"},
            {"collection_id": "col2", "dish_id": "d1"},
        ],
    }


@pytest.fixture(autouse=True)
def _clear_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def supabase() -> FakeSupabase:
    db = FakeSupabase(seed_tables())
    db.auth.add_user(ALICE, "alice@example.com", "old-secret")
    return db


@pytest.fixture
def config() -> AccountConfig:
    return AccountConfig()


@pytest.fixture
def user_service(supabase: FakeSupabase, config: AccountConfig) -> UserService:
    return UserService(supabase, config)


@pytest.fixture
def admin_service(supabase: FakeSupabase, config: AccountConfig) -> AdminService:
    return AdminService(supabase, config)


@pytest.fixture
def dish_service(supabase: FakeSupabase) -> DishService:
    return DishService(supabase)
