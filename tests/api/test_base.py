"""Tests for the API response envelope and error mapping."""

from fastapi import FastAPI
from starlette.testclient import TestClient

from api.base import ErrorCodes, error_response, success_response
from api.errors import register_error_handlers
from core.exceptions import InvalidTransition, PersistFailure
from core.models import AppointmentStatus


class TestEnvelope:

    def test_success_response(self):
        response = success_response({"id": 1})

        assert response.success is True
        assert response.data == {"id": 1}
        assert response.error is None
        assert response.meta.request_id

    def test_request_id_passed_through(self):
        assert success_response(None, "req-1").meta.request_id == "req-1"

    def test_error_response(self):
        response = error_response(ErrorCodes.PERSIST_FAILED, "Database unavailable")

        assert response.success is False
        assert response.data is None
        assert response.error.code == "PERSIST_FAILED"
        assert response.error.message == "Database unavailable"


def _failing_app(exc):
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:

    def test_not_found_value_error(self):
        response = _failing_app(ValueError("Appointment 9 not found")).get("/boom")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_already_exists_value_error(self):
        response = _failing_app(ValueError("Completion record already exists for appointment 2")).get("/boom")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    def test_persist_failure_keeps_message(self):
        response = _failing_app(PersistFailure("Staff member is not available")).get("/boom")

        assert response.status_code == 502
        assert response.json()["error"]["message"] == "Staff member is not available"

    def test_unhandled_error_is_500(self):
        response = _failing_app(RuntimeError("secret detail")).get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "secret detail" not in body["error"]["message"]

    def test_invalid_transition_is_conflict(self):
        response = _failing_app(
            InvalidTransition(AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED)
        ).get("/boom")

        assert response.status_code == 409
        assert "cancelled" in response.json()["error"]["message"]
