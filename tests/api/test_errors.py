"""Tests for the global error handlers and request-context dependency."""

from uuid import uuid4

import pytest
from fastapi import FastAPI, HTTPException
from starlette.testclient import TestClient

from api.errors import register_error_handlers
from auth.exceptions import InvalidTokenError, SessionExpiredError
from config import AppConfig
from core.exceptions import InvalidRequestError


def _app_raising(exc: Exception, debug: bool = False) -> TestClient:
    app = FastAPI()
    register_error_handlers(app, debug=debug)

    @app.get("/boom")
    async def boom():
        raise exc

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:

    @pytest.mark.parametrize("message,status,code", [
        ("Client 42 not found", 404, "NOT_FOUND"),
        ("Something else is wrong", 400, "INVALID_REQUEST"),
    ])
    def test_plain_value_error(self, message, status, code):
        response = _app_raising(ValueError(message)).get("/boom")

        assert response.status_code == status
        assert response.json()["error"]["code"] == code

    def test_typed_domain_error(self):
        response = _app_raising(InvalidRequestError("Project doesn't belong to client")).get("/boom")

        assert response.status_code == 400
        body = response.json()
        assert body == {
            "success": False,
            "message": "Project doesn't belong to client",
            "data": None,
            "error": {"code": "INVALID_REQUEST", "detail": None},
            "timestamp": body["timestamp"],
        }

    def test_http_exception_uses_envelope(self):
        response = _app_raising(HTTPException(status_code=404, detail="Nope")).get("/boom")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert response.json()["message"] == "Nope"

    def test_unhandled_hides_detail(self):
        response = _app_raising(RuntimeError("db password is hunter2")).get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == {"code": "INTERNAL_ERROR", "detail": None}
        assert "hunter2" not in response.text

    def test_unhandled_detail_in_debug(self):
        response = _app_raising(RuntimeError("kaboom"), debug=True).get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["detail"] == "kaboom"


class TestAuthentication:

    def test_health_is_public(self, unauthed_client):
        response = unauthed_client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "ok"}

    def test_missing_token(self, unauthed_client):
        response = unauthed_client.get("/api/invoices")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_bearer_header_accepted(self, unauthed_client, services, mock_verifier):
        services["payment"].list.return_value = []

        response = unauthed_client.get("/api/payments", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 200
        mock_verifier.verify.assert_called_once_with("abc")

    def test_expired_token(self, client, mock_verifier):
        mock_verifier.verify.side_effect = SessionExpiredError("Token has expired")

        response = client.get("/api/invoices")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    def test_invalid_token(self, client, mock_verifier):
        mock_verifier.verify.side_effect = InvalidTokenError("bad signature")

        response = client.get("/api/invoices")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"


class TestRequestContext:

    def test_non_member_is_403(self, client, organization_service):
        organization_service.get_membership.return_value = None

        response = client.get(f"/api/invoices/{uuid4()}")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_A_MEMBER"

    def test_membership_looked_up_for_token_identity(self, client, services, organization_service,
                                                     test_user_id, test_org_id):
        services["payment"].list.return_value = []

        client.get("/api/payments")

        organization_service.get_membership.assert_called_once_with(test_user_id, test_org_id)


class TestDebugApp:

    @pytest.fixture
    def app_config(self):
        return AppConfig(debug=True)

    def test_service_crash_reports_detail(self, client, services):
        services["payment"].list.side_effect = RuntimeError("connection reset")

        response = client.get("/api/payments")

        assert response.status_code == 500
        assert response.json()["error"]["detail"] == "connection reset"
