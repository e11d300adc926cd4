# =============================================================================
# TARJETA CRC - tests/unit/api/test_metrics_security.py
# =============================================================================
# Responsabilidades:
# - Validar la politica de auth del endpoint /metrics.
# - Validar /healthz contra el repositorio en memoria.
# - Validar la normalizacion de paths (cardinalidad de labels).
#
# Colaboradores:
# - tenant_guard/api/main.py
# - tenant_guard/crosscutting/metrics.py
#
# Invariantes:
# - No usar secretos reales en tests.
# =============================================================================

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tenant_guard.api.main import create_app
from tenant_guard.container import get_authorization_pipeline
from tenant_guard.crosscutting.config import get_settings
from tenant_guard.crosscutting.metrics import (
    _normalize_endpoint,
    _status_bucket,
    record_authz_rejection,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def metrics_auth(monkeypatch):
    monkeypatch.setenv("METRICS_REQUIRE_AUTH", "1")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _client(authz) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_authorization_pipeline] = lambda: authz.pipeline
    return TestClient(app, raise_server_exceptions=False)


def test_metrics_public_when_auth_disabled(authz):
    response = _client(authz).get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_metrics_exposes_rejection_counter(authz):
    record_authz_rejection("SCOPE_MISMATCH")

    response = _client(authz).get("/metrics")

    assert 'authz_rejections_total{reason="SCOPE_MISMATCH"}' in response.text


def test_metrics_requires_token_when_enabled(authz, metrics_auth):
    response = _client(authz).get("/metrics")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"


def test_metrics_rejects_tenant_principal(authz, metrics_auth, tenant_principal):
    authz.add(tenant_principal)

    response = _client(authz).get(
        "/metrics",
        headers={"Authorization": f"Bearer {authz.token_for(tenant_principal)}"},
    )

    assert response.status_code == 403
    assert response.json()["code"] == "SCOPE_MISMATCH"


def test_metrics_allows_platform_principal(authz, metrics_auth, platform_principal):
    authz.add(platform_principal)

    response = _client(authz).get(
        "/metrics",
        headers={"Authorization": f"Bearer {authz.token_for(platform_principal)}"},
    )

    assert response.status_code == 200


def test_healthz_with_in_memory_storage(authz):
    response = _client(authz).get("/healthz", headers={"X-Request-Id": "hc-1"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "db": "connected", "request_id": "hc-1"}


def test_oversized_request_id_is_replaced(authz):
    response = _client(authz).get("/healthz", headers={"X-Request-Id": "x" * 500})

    echoed = response.headers["X-Request-Id"]
    assert echoed != "x" * 500
    assert response.json()["request_id"] == echoed


@pytest.mark.parametrize(
    "path,expected",
    [
        (f"/v1/tenants/{uuid4()}/modules/money-loan", "/v1/tenants/{tenant_id}/modules/money-loan"),
        (f"/v1/items/{uuid4()}", "/v1/items/{id}"),
        ("/v1/items/42", "/v1/items/{id}"),
        ("/v1/admin/audit-logs", "/v1/admin/audit-logs"),
    ],
)
def test_normalize_endpoint(path, expected):
    assert _normalize_endpoint(path) == expected


@pytest.mark.parametrize(
    "code,bucket",
    [(200, "2xx"), (204, "2xx"), (301, "3xx"), (403, "4xx"), (503, "5xx"), (99, "other")],
)
def test_status_bucket(code, bucket):
    assert _status_bucket(code) == bucket
