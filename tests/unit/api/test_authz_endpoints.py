"""
Name: Authorization Endpoint Tests

Responsibilities:
  - /v1/session: principal resolution over HTTP (401 problem+json paths)
  - /v1/tenants/{id}/modules/{name}: own-tenant guard + audited lookup
  - /v1/admin/audit-logs: permission gate, tenant isolation of the read path
  - /v1/admin/system-logs[/summary]: platform-only view with derived level/source
"""

from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from tenant_guard.api.main import create_app
from tenant_guard.audit import AuditQueryService
from tenant_guard.container import (
    get_audit_query_service,
    get_authorization_pipeline,
    get_feature_flag_lookup,
)
from tenant_guard.crosscutting.exceptions import DatabaseError

pytestmark = pytest.mark.unit


@pytest.fixture
def client(authz):
    app = create_app()
    app.dependency_overrides[get_authorization_pipeline] = lambda: authz.pipeline
    app.dependency_overrides[get_feature_flag_lookup] = lambda: authz.flags
    app.dependency_overrides[get_audit_query_service] = lambda: AuditQueryService(
        authz.audit_log
    )
    return TestClient(app)


def _auth(authz, principal, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {authz.token_for(principal, **kwargs)}"}


def _rejections(client, reason: str) -> float:
    text = client.get("/metrics").text
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            if (
                sample.name == "authz_rejections_total"
                and sample.labels.get("reason") == reason
            ):
                return sample.value
    return 0.0


class TestSession:
    def test_returns_principal_and_bound_tenant(self, client, authz, tenant_principal, tenant_id):
        authz.add(tenant_principal)

        response = client.get("/v1/session", headers=_auth(authz, tenant_principal))

        assert response.status_code == 200
        body = response.json()
        assert body["principal"]["id"] == str(tenant_principal.id)
        assert body["principal"]["role_scope"] == "tenant"
        assert body["bound_tenant_id"] == str(tenant_id)
        assert body["state"] == "authorized"

    def test_platform_session_has_no_bound_tenant(self, client, authz, platform_principal):
        authz.add(platform_principal)

        response = client.get("/v1/session", headers=_auth(authz, platform_principal))

        assert response.status_code == 200
        assert response.json()["bound_tenant_id"] is None

    def test_missing_token_is_401_problem_json(self, client):
        response = client.get("/v1/session")

        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_expired_token_is_401_expired(self, client, authz, tenant_principal):
        authz.add(tenant_principal)

        response = client.get(
            "/v1/session",
            headers=_auth(authz, tenant_principal, expires_in=timedelta(minutes=-1)),
        )

        assert response.status_code == 401
        assert response.json()["code"] == "EXPIRED_CREDENTIAL"

    def test_inactive_and_invalid_are_indistinguishable(self, client, authz, tenant_principal):
        authz.add(tenant_principal, is_active=False)

        inactive = client.get("/v1/session", headers=_auth(authz, tenant_principal))
        invalid = client.get(
            "/v1/session", headers={"Authorization": "Bearer not-a-token"}
        )

        assert inactive.status_code == invalid.status_code == 401
        assert inactive.json()["code"] == invalid.json()["code"] == "INVALID_CREDENTIAL"
        assert inactive.json()["detail"] == invalid.json()["detail"]

    def test_tenant_user_without_tenant_is_403(self, client, authz, make_principal):
        principal = authz.add(make_principal(tenant_id=None))

        response = client.get("/v1/session", headers=_auth(authz, principal))

        assert response.status_code == 403
        assert response.json()["code"] == "NO_TENANT_ASSOCIATION"

    def test_request_id_is_echoed(self, client, authz, tenant_principal):
        authz.add(tenant_principal)
        headers = {**_auth(authz, tenant_principal), "X-Request-Id": "req-123"}

        response = client.get("/v1/session", headers=headers)

        assert response.headers["X-Request-Id"] == "req-123"


class TestModuleStatus:
    def test_own_tenant_lookup_is_audited(self, client, authz, tenant_principal, tenant_id):
        authz.add(tenant_principal)
        authz.flags.set_flag(tenant_id, "money-loan", enabled=True)

        response = client.get(
            f"/v1/tenants/{tenant_id}/modules/money-loan",
            headers={**_auth(authz, tenant_principal), "User-Agent": "pytest-agent"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "tenant_id": str(tenant_id),
            "module_name": "money-loan",
            "enabled": True,
        }
        [record] = authz.audit_log.all()
        assert record.action == "VIEW"
        assert record.resource == "TENANT_FEATURE"
        assert record.resource_id == tenant_id
        assert record.tenant_id == tenant_id
        assert record.user_agent == "pytest-agent"
        assert record.details == {"module_name": "money-loan", "outcome": "success"}

    def test_absent_flag_reports_disabled(self, client, authz, tenant_principal, tenant_id):
        authz.add(tenant_principal)

        response = client.get(
            f"/v1/tenants/{tenant_id}/modules/money-loan",
            headers=_auth(authz, tenant_principal),
        )

        assert response.status_code == 200
        assert response.json()["enabled"] is False

    def test_other_tenant_is_403_and_not_audited(self, client, authz, tenant_principal):
        authz.add(tenant_principal)

        response = client.get(
            f"/v1/tenants/{uuid4()}/modules/money-loan",
            headers=_auth(authz, tenant_principal),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "CROSS_TENANT_ACCESS"
        assert authz.audit_log.all() == []

    def test_other_tenant_denial_is_counted(self, client, authz, tenant_principal):
        authz.add(tenant_principal)
        before = _rejections(client, "CROSS_TENANT_ACCESS")

        client.get(
            f"/v1/tenants/{uuid4()}/modules/money-loan",
            headers=_auth(authz, tenant_principal),
        )

        assert _rejections(client, "CROSS_TENANT_ACCESS") == before + 1

    def test_platform_can_read_any_tenant(self, client, authz, platform_principal):
        authz.add(platform_principal)
        target = uuid4()
        authz.flags.set_flag(target, "money-loan", enabled=True)

        response = client.get(
            f"/v1/tenants/{target}/modules/money-loan",
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 200
        assert response.json()["enabled"] is True
        [record] = authz.audit_log.all()
        assert record.tenant_id == target


class TestAuditLogs:
    def _seed(self, authz, principal, *pairs):
        for action, resource in pairs:
            authz.recorder.record(action, resource, principal=principal)

    def test_requires_view_audit_logs(self, client, authz, tenant_principal):
        authz.add(tenant_principal)

        response = client.get("/v1/admin/audit-logs", headers=_auth(authz, tenant_principal))

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "INSUFFICIENT_PERMISSION"
        assert "view_audit_logs" in body["detail"]

    def test_tenant_principal_sees_only_own_tenant(self, client, authz, make_principal):
        t1, t2 = uuid4(), uuid4()
        admin = authz.add(make_principal(tenant_id=t1))
        authz.permissions.grant(admin.role_id, "view_audit_logs")
        outsider = authz.add(make_principal(tenant_id=t2))
        self._seed(authz, admin, ("update", "loan"))
        self._seed(authz, outsider, ("update", "loan"), ("delete", "customer"))

        response = client.get("/v1/admin/audit-logs", headers=_auth(authz, admin))

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["logs"][0]["tenant_id"] == str(t1)
        assert body["logs"][0]["user_email"] == admin.email

    def test_tenant_principal_cannot_request_other_tenant(self, client, authz, tenant_principal):
        authz.add(tenant_principal)
        authz.permissions.grant(tenant_principal.role_id, "view_audit_logs")

        response = client.get(
            "/v1/admin/audit-logs",
            params={"tenant_id": str(uuid4())},
            headers=_auth(authz, tenant_principal),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "CROSS_TENANT_ACCESS"

    def test_platform_reads_across_tenants_with_filters(
        self, client, authz, platform_principal, make_principal
    ):
        authz.add(platform_principal)
        a = authz.add(make_principal(tenant_id=uuid4()))
        b = authz.add(make_principal(tenant_id=uuid4()))
        self._seed(authz, a, ("update", "loan"), ("view", "loan"))
        self._seed(authz, b, ("update", "customer"))

        response = client.get(
            "/v1/admin/audit-logs",
            params={"action": "update"},
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert sorted(log["resource"] for log in body["logs"]) == ["CUSTOMER", "LOAN"]

    def test_all_sentinel_and_limit(self, client, authz, platform_principal, make_principal):
        authz.add(platform_principal)
        user = authz.add(make_principal(tenant_id=uuid4()))
        self._seed(authz, user, ("create", "loan"), ("update", "loan"), ("view", "loan"))

        response = client.get(
            "/v1/admin/audit-logs",
            params={"action": "all", "limit": 2},
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 200
        assert response.json()["count"] == 2

    def test_invalid_days_is_422(self, client, authz, platform_principal):
        authz.add(platform_principal)

        response = client.get(
            "/v1/admin/audit-logs",
            params={"days": 0},
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 422

    def test_storage_failure_is_503(self, client, authz, platform_principal):
        authz.add(platform_principal)
        failing = Mock()
        failing.query.side_effect = DatabaseError("connection refused")
        client.app.dependency_overrides[get_audit_query_service] = lambda: AuditQueryService(
            failing
        )

        response = client.get("/v1/admin/audit-logs", headers=_auth(authz, platform_principal))

        assert response.status_code == 503
        assert response.json()["code"] == "AUDIT_QUERY_FAILED"


class TestSystemLogs:
    def _seed(self, authz, make_principal):
        user = authz.add(make_principal(tenant_id=uuid4(), email="ops@lender.com"))
        for action, resource in (
            ("create", "loan"),
            ("view", "role"),
            ("export_error", "report"),
            ("login", "session"),
        ):
            authz.recorder.record(action, resource, principal=user)
        return user

    def test_platform_scope_required(self, client, authz, tenant_principal):
        authz.add(tenant_principal)
        authz.permissions.grant(tenant_principal.role_id, "view_audit_logs")

        for path in ("/v1/admin/system-logs", "/v1/admin/system-logs/summary"):
            response = client.get(path, headers=_auth(authz, tenant_principal))

            assert response.status_code == 403
            assert response.json()["code"] == "SCOPE_MISMATCH"

    def test_entries_carry_derived_level_and_source(
        self, client, authz, platform_principal, make_principal
    ):
        authz.add(platform_principal)
        self._seed(authz, make_principal)

        response = client.get(
            "/v1/admin/system-logs", headers=_auth(authz, platform_principal)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 4
        by_action = {log["action"]: log for log in body["system_logs"]}
        assert by_action["CREATE"]["level"] == "SUCCESS"
        assert by_action["CREATE"]["source"] == "AUTH"
        assert by_action["CREATE"]["message"] == "CREATE LOAN by ops@lender.com"
        assert by_action["VIEW"]["source"] == "RBAC"
        assert by_action["EXPORT_ERROR"]["level"] == "ERROR"
        assert by_action["LOGIN"]["level"] == "INFO"

    @pytest.mark.parametrize(
        "params,actions",
        [
            ({"level": "success"}, ["CREATE"]),
            ({"level": "ERROR"}, ["EXPORT_ERROR"]),
            ({"level": "info"}, ["LOGIN", "VIEW"]),
            ({"level": "all", "search": "role"}, ["VIEW"]),
            ({"search": "ops@"}, ["CREATE", "EXPORT_ERROR", "LOGIN", "VIEW"]),
        ],
    )
    def test_level_and_search_filters(
        self, client, authz, platform_principal, make_principal, params, actions
    ):
        authz.add(platform_principal)
        self._seed(authz, make_principal)

        response = client.get(
            "/v1/admin/system-logs",
            params=params,
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 200
        assert sorted(log["action"] for log in response.json()["system_logs"]) == actions

    def test_unknown_level_is_422(self, client, authz, platform_principal):
        authz.add(platform_principal)

        response = client.get(
            "/v1/admin/system-logs",
            params={"level": "debug"},
            headers=_auth(authz, platform_principal),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_summary_counts(self, client, authz, platform_principal, make_principal):
        authz.add(platform_principal)
        self._seed(authz, make_principal)

        response = client.get(
            "/v1/admin/system-logs/summary", headers=_auth(authz, platform_principal)
        )

        assert response.status_code == 200
        assert response.json() == {
            "days": 7,
            "total": 4,
            "successful": 1,
            "errors": 1,
            "auth_events": 1,
        }

    def test_summary_storage_failure_is_503(self, client, authz, platform_principal):
        authz.add(platform_principal)
        failing = Mock()
        failing.summarize.side_effect = DatabaseError("connection refused")
        client.app.dependency_overrides[get_audit_query_service] = lambda: AuditQueryService(
            failing
        )

        response = client.get(
            "/v1/admin/system-logs/summary", headers=_auth(authz, platform_principal)
        )

        assert response.status_code == 503
        assert response.json()["code"] == "AUDIT_QUERY_FAILED"
