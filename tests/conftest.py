"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure test environment (APP_ENV=test, no .env file)
  - Provide principal factories and a wired in-memory pipeline
  - Reset container singletons between tests

Collaborators:
  - pytest: Test framework
  - tenant_guard.infrastructure.repositories.in_memory: fakes de storage
  - tenant_guard.identity: pipeline y evaluadores

Notes:
  - Fixtures are auto-discovered by pytest
  - Use @pytest.fixture(scope="function") for per-test isolation
"""

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from tenant_guard.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None
app_config.get_settings.cache_clear()

from tenant_guard.audit import AuditRecorder  # noqa: E402
from tenant_guard.container import reset_container  # noqa: E402
from tenant_guard.identity.credentials import (  # noqa: E402
    JwtCredentialVerifier,
    create_access_token,
)
from tenant_guard.identity.features import FeatureGate  # noqa: E402
from tenant_guard.identity.permissions import PermissionEvaluator  # noqa: E402
from tenant_guard.identity.pipeline import AuthorizationPipeline  # noqa: E402
from tenant_guard.identity.principal import Principal, RoleScope  # noqa: E402
from tenant_guard.identity.resolver import IdentityResolver  # noqa: E402
from tenant_guard.infrastructure.queue import InlineAuditDispatcher  # noqa: E402
from tenant_guard.infrastructure.repositories import (  # noqa: E402
    InMemoryAuditLogRepository,
    InMemoryFeatureFlagRepository,
    InMemoryPermissionRepository,
    InMemoryUserRoleRepository,
)

TEST_SECRET = "test-secret"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


@pytest.fixture(autouse=True)
def _reset_singletons():
    reset_container()
    yield
    reset_container()


# ============================================================================
# Principal factories
# ============================================================================


def build_principal(
    *,
    scope: RoleScope = RoleScope.TENANT,
    tenant_id: UUID | None = None,
    role_id: UUID | None = None,
    role_name: str | None = None,
    email: str | None = None,
    first_name: str | None = "Ana",
    last_name: str | None = "García",
) -> Principal:
    user_id = uuid4()
    return Principal(
        id=user_id,
        email=email or f"user-{user_id.hex[:8]}@example.com",
        role_id=role_id or uuid4(),
        role_name=role_name
        or ("Super Admin" if scope == RoleScope.PLATFORM else "Tenant Admin"),
        role_scope=scope,
        tenant_id=tenant_id,
        first_name=first_name,
        last_name=last_name,
    )


@pytest.fixture
def make_principal():
    """R: Factory de principals (tenant por defecto)."""
    return build_principal


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def platform_principal() -> Principal:
    return build_principal(scope=RoleScope.PLATFORM)


@pytest.fixture
def tenant_principal(tenant_id: UUID) -> Principal:
    return build_principal(tenant_id=tenant_id)


# ============================================================================
# Wired in-memory pipeline
# ============================================================================


@pytest.fixture
def authz():
    """
    R: Pipeline completo sobre repositorios en memoria.

    Auditoría sincrónica (InlineAuditDispatcher) para poder asertar sin esperar
    al worker.
    """
    users = InMemoryUserRoleRepository()
    permissions = InMemoryPermissionRepository()
    flags = InMemoryFeatureFlagRepository()
    audit_log = InMemoryAuditLogRepository()
    dispatcher = InlineAuditDispatcher(audit_log)
    recorder = AuditRecorder(dispatcher)
    verifier = JwtCredentialVerifier(TEST_SECRET)
    pipeline = AuthorizationPipeline(
        resolver=IdentityResolver(verifier, users),
        permissions=PermissionEvaluator(permissions),
        features=FeatureGate(flags),
        recorder=recorder,
    )

    def add(principal: Principal, *, is_active: bool = True) -> Principal:
        users.add_user(principal, is_active=is_active)
        audit_log.register_user(principal)
        return principal

    def token_for(principal: Principal, **kwargs) -> str:
        return create_access_token(str(principal.id), secret=TEST_SECRET, **kwargs)

    return SimpleNamespace(
        users=users,
        permissions=permissions,
        flags=flags,
        audit_log=audit_log,
        dispatcher=dispatcher,
        recorder=recorder,
        pipeline=pipeline,
        add=add,
        token_for=token_for,
    )
