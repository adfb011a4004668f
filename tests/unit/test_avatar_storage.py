"""Unit tests for avatar storage backend selection."""

from __future__ import annotations

import pytest

from dishes_api.config import settings
from dishes_api.modules.users import avatar_storage
from dishes_api.modules.users.avatar_storage import (
    AvatarStorageHolder,
    SupabaseAvatarStorage,
    get_avatar_storage,
)
from tests.fakes import FakeSupabase


pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_holder():
    AvatarStorageHolder.reset()
    yield
    AvatarStorageHolder.reset()


@pytest.fixture
def s3_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "aws_access_key_id", "AKIATEST")
    monkeypatch.setattr(settings, "aws_secret_access_key", "secret")
    monkeypatch.setattr(settings, "s3_bucket_name", "avatars-bucket")


class TestGetAvatarStorage:
    def test_supabase_when_s3_not_configured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "s3_bucket_name", None)

        storage = get_avatar_storage(FakeSupabase())

        assert isinstance(storage, SupabaseAvatarStorage)

    def test_s3_backend_is_built_once(self, monkeypatch: pytest.MonkeyPatch, s3_settings) -> None:
        built = []

        class CountingS3Storage:
            def __init__(self):
                built.append(self)

        monkeypatch.setattr(avatar_storage, "S3AvatarStorage", CountingS3Storage)

        first = get_avatar_storage(FakeSupabase())
        second = get_avatar_storage(FakeSupabase())

        assert first is second
        assert len(built) == 1

    def test_falls_back_when_s3_init_fails(self, monkeypatch: pytest.MonkeyPatch, s3_settings) -> None:
        def broken():
            raise ValueError("bad credentials")

        monkeypatch.setattr(avatar_storage, "S3AvatarStorage", broken)

        storage = get_avatar_storage(FakeSupabase())

        assert isinstance(storage, SupabaseAvatarStorage)
