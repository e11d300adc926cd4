"""
Name: Error Response Tests

Responsibilities:
  - Pipeline rejections map to their HTTP status and stable code
  - Problem+json body shape (RFC7807)
  - Internal messages never reach the client
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tenant_guard.api.exception_handlers import register_exception_handlers
from tenant_guard.crosscutting.error_responses import PROBLEM_JSON_MEDIA_TYPE
from tenant_guard.crosscutting.exceptions import (
    AuditQueryFailed,
    DatabaseError,
    TenantGuardError,
)
from tenant_guard.identity.errors import (
    AccessDenied,
    CrossTenantAccessDenied,
    ExpiredCredential,
    InactiveOrUnknownPrincipal,
    InsufficientPermission,
    InvalidCredential,
    ModuleNotEnabled,
    NoTenantAssociation,
    ScopeMismatch,
    Unauthenticated,
)

pytestmark = pytest.mark.unit


def _client_raising(exc: Exception) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise exc

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (AccessDenied(), 403, "ACCESS_DENIED"),
        (Unauthenticated(), 401, "UNAUTHENTICATED"),
        (InvalidCredential("firma inválida"), 401, "INVALID_CREDENTIAL"),
        (ExpiredCredential("exp vencido"), 401, "EXPIRED_CREDENTIAL"),
        (InactiveOrUnknownPrincipal("usuario inactivo"), 401, "INVALID_CREDENTIAL"),
        (NoTenantAssociation(), 403, "NO_TENANT_ASSOCIATION"),
        (ScopeMismatch("platform", "tenant"), 403, "SCOPE_MISMATCH"),
        (InsufficientPermission("delete_customer"), 403, "INSUFFICIENT_PERMISSION"),
        (ModuleNotEnabled("money-loan"), 403, "MODULE_NOT_ENABLED"),
        (CrossTenantAccessDenied("t-2"), 403, "CROSS_TENANT_ACCESS"),
    ],
)
def test_rejections_map_to_status_and_code(exc, status, code):
    response = _client_raising(exc).get("/boom")

    assert response.status_code == status
    assert response.headers["content-type"].startswith(PROBLEM_JSON_MEDIA_TYPE)
    body = response.json()
    assert body["code"] == code
    assert body["status"] == status
    assert body["type"] == f"about:blank/{code.lower()}"
    assert body["instance"].endswith("/boom")


@pytest.mark.parametrize(
    "exc", [Unauthenticated(), InvalidCredential(), ExpiredCredential()]
)
def test_401_carries_www_authenticate(exc):
    response = _client_raising(exc).get("/boom")

    assert response.headers["www-authenticate"] == "Bearer"


def test_403_has_no_www_authenticate():
    response = _client_raising(NoTenantAssociation()).get("/boom")

    assert "www-authenticate" not in response.headers


def test_internal_message_stays_out_of_body():
    response = _client_raising(
        InactiveOrUnknownPrincipal("usuario 1234 inactivo")
    ).get("/boom")

    body = response.json()
    assert "1234" not in response.text
    assert body["detail"] == InvalidCredential.public_detail


def test_permission_detail_names_the_permission():
    response = _client_raising(
        InsufficientPermission(["update_loan", "manage_loan"])
    ).get("/boom")

    assert "update_loan, manage_loan" in response.json()["detail"]


def test_cross_tenant_detail_hides_requested_tenant():
    response = _client_raising(CrossTenantAccessDenied("tenant-secreto")).get("/boom")

    assert "tenant-secreto" not in response.text


class TestServiceErrors:
    def test_database_error_is_503(self):
        response = _client_raising(DatabaseError("connection refused")).get("/boom")

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == "DATABASE_ERROR"
        assert "connection refused" not in response.text
        assert "error_id" in body["errors"][0]

    def test_audit_query_failed_is_503(self):
        exc = AuditQueryFailed("timeout", error_id="err-1")

        response = _client_raising(exc).get("/boom")

        assert response.status_code == 503
        assert response.json()["code"] == "AUDIT_QUERY_FAILED"
        assert response.json()["errors"][0]["error_id"] == "err-1"

    def test_base_service_error_is_500(self):
        response = _client_raising(TenantGuardError("algo")).get("/boom")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"

    def test_unhandled_exception_is_500_problem_json(self):
        response = _client_raising(RuntimeError("kaboom")).get("/boom")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith(PROBLEM_JSON_MEDIA_TYPE)
        assert response.json()["code"] == "INTERNAL_ERROR"


def test_invalid_query_param_is_422_problem_json():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/items")
    def items(limit: int):
        return {"limit": limit}

    response = TestClient(app).get("/items", params={"limit": "many"})

    assert response.status_code == 422
    assert response.headers["content-type"].startswith(PROBLEM_JSON_MEDIA_TYPE)
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"][0]["loc"] == "query.limit"


def test_denial_without_own_code_falls_back_to_access_denied():
    class QuotaExceeded(AccessDenied):
        public_detail = "Cupo agotado."

    response = _client_raising(QuotaExceeded()).get("/boom")

    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"
    assert response.json()["detail"] == "Cupo agotado."
