"""
===============================================================================
TARJETA CRC — identity/pipeline.py
===============================================================================

Módulo:
    Pipeline de autorización (orquestador)

Responsabilidades:
    - Ejecutar en orden fijo: identidad -> aislamiento de tenant -> checks
      declarados por el endpoint (en el orden declarado).
    - Cortar en el primer rechazo: loguear, contar y relanzar. La excepción
      lleva `state` (estado desde el que se rechazó) y `context` (el mismo
      contexto ya en REJECTED).
    - execute(): correr el handler con el contexto autorizado y, si el
      endpoint lo declara, auditar el resultado (éxito o falla) sin alterar
      lo que devuelve o lanza el handler. El contexto COMPLETED se entrega a
      `on_complete` (si se pasa) después de auditar.

Colaboradores:
    - identity.resolver.IdentityResolver
    - identity.tenant_isolation.TenantIsolationGate
    - identity.permissions.PermissionEvaluator / ScopeEvaluator
    - identity.features.FeatureGate
    - tenant_guard.audit.AuditRecorder
    - crosscutting.metrics (rechazos / latencia)

Notas:
    - Sin reintentos: un rechazo es definitivo para ese request.
    - Los rechazos NO se auditan (solo se loguean y cuentan).
===============================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar, Union
from uuid import UUID

from ..crosscutting.logger import logger
from ..crosscutting.metrics import observe_authz_latency, record_authz_rejection
from .errors import AccessDenied
from .features import FeatureGate
from .permissions import PermissionEvaluator, ScopeEvaluator
from .principal import RoleScope
from .request_context import PipelineState, Provenance, RequestContext
from .resolver import IdentityResolver
from .tenant_isolation import TenantIsolationGate, ensure_tenant_access

if TYPE_CHECKING:
    from ..audit import AuditRecorder

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Checks declarativos
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RequirePermission:
    permission: str


@dataclass(frozen=True, slots=True)
class RequireAnyPermission:
    permissions: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.permissions:
            raise ValueError("RequireAnyPermission necesita al menos un permiso")


@dataclass(frozen=True, slots=True)
class RequireScope:
    scope: RoleScope


@dataclass(frozen=True, slots=True)
class RequireModule:
    module_name: str


@dataclass(frozen=True, slots=True)
class RequireTenantAccess:
    """Recurso de un tenant explícito (path o query): solo el propio o plataforma."""

    tenant_id: UUID


Check = Union[
    RequirePermission,
    RequireAnyPermission,
    RequireScope,
    RequireModule,
    RequireTenantAccess,
]


@dataclass(frozen=True, slots=True)
class AuditSpec:
    """Auditoría declarada por un endpoint: se emite al terminar el handler."""

    action: str
    resource: str
    resource_id: Any = None
    details: dict[str, Any] = field(default_factory=dict)
    tenant_id: UUID | None = None


class AuthorizationPipeline:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AuthorizationPipeline

    Responsabilidades:
      - authorize(token, checks) -> RequestContext en estado AUTHORIZED
      - execute(ctx, handler, audit) -> resultado del handler

    Colaboradores:
      - evaluadores de identity/*, AuditRecorder
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        *,
        resolver: IdentityResolver,
        permissions: PermissionEvaluator,
        features: FeatureGate,
        isolation: TenantIsolationGate | None = None,
        scopes: ScopeEvaluator | None = None,
        recorder: AuditRecorder | None = None,
    ):
        self._resolver = resolver
        self._isolation = isolation or TenantIsolationGate()
        self._permissions = permissions
        self._scopes = scopes or ScopeEvaluator()
        self._features = features
        self._recorder = recorder

    def authorize(
        self,
        token: str | None,
        checks: Sequence[Check] = (),
        *,
        provenance: Provenance | None = None,
    ) -> RequestContext:
        ctx = RequestContext(provenance=provenance or Provenance(), recorder=self._recorder)
        start = time.perf_counter()

        try:
            principal = self._resolver.resolve(token)
            ctx = ctx.advance(PipelineState.IDENTIFIED, principal=principal)
            ctx = self._isolation.bind(ctx)
            for check in checks:
                self._evaluate(ctx, check)
        except AccessDenied as exc:
            self._reject(ctx, exc)
            observe_authz_latency("rejected", time.perf_counter() - start)
            raise

        observe_authz_latency("authorized", time.perf_counter() - start)
        return ctx.advance(PipelineState.AUTHORIZED)

    def execute(
        self,
        ctx: RequestContext,
        handler: Callable[[RequestContext], T],
        *,
        audit: AuditSpec | None = None,
        on_complete: Callable[[RequestContext], None] | None = None,
    ) -> T:
        if ctx.state != PipelineState.AUTHORIZED:
            raise ValueError(f"Contexto no autorizado (estado: {ctx.state.value})")

        outcome = "failure"
        try:
            result = handler(ctx)
            outcome = "success"
            return result
        finally:
            completed = ctx.advance(PipelineState.COMPLETED)
            if audit is not None:
                completed.audit(
                    audit.action,
                    audit.resource,
                    resource_id=audit.resource_id,
                    details={**audit.details, "outcome": outcome},
                    tenant_id=audit.tenant_id,
                )
            if on_complete is not None:
                on_complete(completed)

    # ------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------
    def _evaluate(self, ctx: RequestContext, check: Check) -> None:
        principal = ctx.require_principal()

        if isinstance(check, RequirePermission):
            self._permissions.require(principal, check.permission)
        elif isinstance(check, RequireAnyPermission):
            self._permissions.require_any(principal, check.permissions)
        elif isinstance(check, RequireScope):
            self._scopes.require(principal, check.scope)
        elif isinstance(check, RequireModule):
            self._features.require(ctx, check.module_name)
        elif isinstance(check, RequireTenantAccess):
            ensure_tenant_access(ctx, check.tenant_id)
        else:
            raise TypeError(f"Check desconocido: {check!r}")

    def _reject(self, ctx: RequestContext, exc: AccessDenied) -> None:
        exc.state = ctx.state
        exc.context = ctx.advance(PipelineState.REJECTED)
        principal = ctx.principal
        record_authz_rejection(exc.reason)
        logger.warning(
            "acceso denegado",
            extra={
                "reason": exc.reason,
                "rejected_from": ctx.state.value,
                "user_id": str(principal.id) if principal else None,
                "tenant_id": str(principal.tenant_id)
                if principal and principal.tenant_id
                else None,
                "detail": exc.message,
            },
        )
