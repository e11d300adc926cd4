"""
===============================================================================
TARJETA CRC — tenant_guard/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer lookups, dispatcher, recorder y pipeline siguiendo DIP.
  - Exponer factories para FastAPI (Depends) y para el lifespan.
  - Singletons con lru_cache.
  - Elegir implementación (in-memory en test, Postgres en runtime).

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories.* (puertos)
  - infrastructure.* (implementaciones)
  - identity.* (evaluadores + pipeline)

Notas:
  - Sin lógica de negocio y sin dependencia de FastAPI.
  - reset_container() limpia los caches (tests).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .audit import AuditQueryService, AuditRecorder
from .crosscutting.config import get_settings
from .domain.repositories import (
    AuditQueryRepository,
    AuditSink,
    FeatureFlagLookup,
    PermissionLookup,
    UserRoleLookup,
)
from .identity.credentials import JwtCredentialVerifier
from .identity.features import FeatureGate
from .identity.permissions import PermissionEvaluator
from .identity.pipeline import AuthorizationPipeline
from .identity.resolver import IdentityResolver
from .infrastructure.queue import QueueAuditDispatcher
from .infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryFeatureFlagRepository,
    InMemoryPermissionRepository,
    InMemoryUserRoleRepository,
    PostgresAuditLogRepository,
    PostgresFeatureFlagRepository,
    PostgresPermissionRepository,
    PostgresUserRoleRepository,
)


def is_test_env() -> bool:
    """app_env ∈ {"test", "testing", "ci"} => adapters in-memory."""
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


# =============================================================================
# Lookups (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_user_role_lookup() -> UserRoleLookup:
    if is_test_env():
        return InMemoryUserRoleRepository()
    return PostgresUserRoleRepository()


@lru_cache(maxsize=1)
def get_permission_lookup() -> PermissionLookup:
    if is_test_env():
        return InMemoryPermissionRepository()
    return PostgresPermissionRepository()


@lru_cache(maxsize=1)
def get_feature_flag_lookup() -> FeatureFlagLookup:
    if is_test_env():
        return InMemoryFeatureFlagRepository()
    return PostgresFeatureFlagRepository()


@lru_cache(maxsize=1)
def get_audit_log_repository() -> InMemoryAuditLogRepository | PostgresAuditLogRepository:
    # R: sink y lectura comparten instancia (en memoria tienen que ver lo mismo).
    if is_test_env():
        return InMemoryAuditLogRepository()
    return PostgresAuditLogRepository()


def get_audit_sink() -> AuditSink:
    return get_audit_log_repository()


def get_audit_query_repository() -> AuditQueryRepository:
    return get_audit_log_repository()


# =============================================================================
# Auditoría
# =============================================================================


@lru_cache(maxsize=1)
def get_audit_dispatcher() -> QueueAuditDispatcher:
    settings = get_settings()
    return QueueAuditDispatcher(
        get_audit_sink(), max_size=settings.audit_queue_max_size
    )


@lru_cache(maxsize=1)
def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(get_audit_dispatcher())


@lru_cache(maxsize=1)
def get_audit_query_service() -> AuditQueryService:
    settings = get_settings()
    return AuditQueryService(
        get_audit_query_repository(),
        default_days=settings.audit_query_default_days,
        max_limit=settings.audit_query_max_limit,
        system_log_days=settings.system_logs_default_days,
        system_log_limit=settings.system_logs_default_limit,
    )


# =============================================================================
# Pipeline
# =============================================================================


@lru_cache(maxsize=1)
def get_authorization_pipeline() -> AuthorizationPipeline:
    settings = get_settings()
    verifier = JwtCredentialVerifier(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        leeway_seconds=settings.jwt_leeway_seconds,
    )
    return AuthorizationPipeline(
        resolver=IdentityResolver(verifier, get_user_role_lookup()),
        permissions=PermissionEvaluator(get_permission_lookup()),
        features=FeatureGate(get_feature_flag_lookup()),
        recorder=get_audit_recorder(),
    )


def reset_container() -> None:
    """Limpia singletons (tests). No cierra el dispatcher."""
    for factory in (
        get_user_role_lookup,
        get_permission_lookup,
        get_feature_flag_lookup,
        get_audit_log_repository,
        get_audit_dispatcher,
        get_audit_recorder,
        get_audit_query_service,
        get_authorization_pipeline,
    ):
        factory.cache_clear()
