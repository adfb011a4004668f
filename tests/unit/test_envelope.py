"""Unit tests for ServiceResult and the service_operation boundary."""

from __future__ import annotations

import logging

import pytest

from dishes_api.core.envelope import ServiceResult, handle_error, handle_success, service_operation
from dishes_api.core.errors import DuplicateError, ErrorKind, NotFoundError
from dishes_api.core.responses import envelope_response


pytestmark = pytest.mark.unit


class Widgets:
    @service_operation(default_code="Unable to build widget", log_fields=("widget_id",))
    async def build(self, widget_id: str, fail_with: Exception = None) -> ServiceResult:
        if fail_with is not None:
            raise fail_with
        return handle_success({"widget": {"id": widget_id}}, "Built")


class TestServiceResult:
    def test_success_flattens_data(self) -> None:
        result = handle_success({"profile": {"id": "u1"}}, "Done")

        assert result.to_dict() == {"success": True, "message": "Done", "profile": {"id": "u1"}}
        assert result.data["profile"] == {"id": "u1"}

    def test_success_without_message(self) -> None:
        assert handle_success({"n": 1}).to_dict() == {"success": True, "n": 1}

    def test_failure_shape(self) -> None:
        result = handle_error(DuplicateError("Tag is taken"))

        assert result.to_dict() == {
            "success": False,
            "error": "Profile tag already exists",
            "message": "Tag is taken",
            "kind": "duplicate",
        }


class TestServiceOperation:
    async def test_passes_success_through(self) -> None:
        result = await Widgets().build("w1")

        assert result.success is True
        assert result.data["widget"] == {"id": "w1"}

    async def test_service_error_keeps_kind_and_code(self) -> None:
        result = await Widgets().build("w1", fail_with=NotFoundError("Widget gone", code="Widget not found"))

        assert result.kind is ErrorKind.NOT_FOUND
        assert result.error == "Widget not found"
        assert result.message == "Widget gone"

    async def test_unexpected_error_is_wrapped(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            result = await Widgets().build("w1", fail_with=KeyError("x"))

        assert result.kind is ErrorKind.INTERNAL
        assert result.error == "Unable to build widget"
        record = next(r for r in caplog.records if getattr(r, "event", None) == "operation_failed")
        assert record.context == {"widget_id": "w1"}
        assert record.error_kind == "internal"


class TestEnvelopeResponse:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (NotFoundError("gone"), 404),
            (DuplicateError("taken"), 409),
        ],
    )
    def test_status_follows_kind(self, error, status_code: int) -> None:
        response = envelope_response(handle_error(error))

        assert response.status_code == status_code

    def test_success_status(self) -> None:
        assert envelope_response(handle_success({}), success_status=201).status_code == 201
