"""
===============================================================================
TARJETA CRC — identity/dependencies.py (Adapter FastAPI del pipeline)
===============================================================================

Responsabilidades:
    - Exponer dependencias FastAPI que corren el pipeline con los checks
      declarados por cada endpoint y devuelven el RequestContext autorizado.
    - Armar la procedencia (IP, user agent, request_id) desde el request.

Colaboradores:
    - identity.pipeline.AuthorizationPipeline (+ checks)
    - identity.credentials.extract_bearer_token
    - container.get_authorization_pipeline (override-able en tests)

Notas:
    - Dependencias `def` (no async): FastAPI las corre en su threadpool y los
      lookups sincrónicos no bloquean el event loop.
    - Los rechazos se propagan como AccessDenied; api/exception_handlers
      los convierte a problem+json.
===============================================================================
"""

from __future__ import annotations

from typing import Callable, Sequence
from uuid import UUID

from fastapi import Depends, Header, Query, Request

from ..container import get_authorization_pipeline
from .credentials import extract_bearer_token
from .pipeline import (
    AuthorizationPipeline,
    Check,
    RequireAnyPermission,
    RequireModule,
    RequirePermission,
    RequireScope,
    RequireTenantAccess,
)
from .principal import RoleScope
from .request_context import Provenance, RequestContext


def provenance_from_request(request: Request) -> Provenance:
    client = request.client
    return Provenance(
        ip_address=client.host if client else None,
        user_agent=request.headers.get("user-agent"),
        request_id=getattr(request.state, "request_id", None),
    )


def _authorize(
    request: Request,
    authorization: str | None,
    pipeline: AuthorizationPipeline,
    checks: Sequence[Check],
) -> RequestContext:
    return pipeline.authorize(
        extract_bearer_token(authorization),
        checks,
        provenance=provenance_from_request(request),
    )


def require_context(*checks: Check) -> Callable[..., RequestContext]:
    """Dependency factory: identidad + tenant + `checks` en el orden dado."""

    def dependency(
        request: Request,
        authorization: str | None = Header(default=None),
        pipeline: AuthorizationPipeline = Depends(get_authorization_pipeline),
    ) -> RequestContext:
        return _authorize(request, authorization, pipeline, checks)

    return dependency


def require_tenant_access(*checks: Check) -> Callable[..., RequestContext]:
    """
    Rutas `/tenants/{tenant_id}/...`: el tenant del path es el primer check,
    antes que `checks`.
    """

    def dependency(
        tenant_id: UUID,
        request: Request,
        authorization: str | None = Header(default=None),
        pipeline: AuthorizationPipeline = Depends(get_authorization_pipeline),
    ) -> RequestContext:
        return _authorize(
            request, authorization, pipeline, (RequireTenantAccess(tenant_id), *checks)
        )

    return dependency


def require_requested_tenant(*checks: Check) -> Callable[..., RequestContext]:
    """`?tenant_id=` opcional: si viene, se valida después de `checks`."""

    def dependency(
        request: Request,
        tenant_id: UUID | None = Query(default=None),
        authorization: str | None = Header(default=None),
        pipeline: AuthorizationPipeline = Depends(get_authorization_pipeline),
    ) -> RequestContext:
        if tenant_id is not None:
            checks_to_run = (*checks, RequireTenantAccess(tenant_id))
        else:
            checks_to_run = checks
        return _authorize(request, authorization, pipeline, checks_to_run)

    return dependency


def require_permissions(*permissions: str) -> Callable[..., RequestContext]:
    """Todos los permisos (cada uno por nombre exacto)."""
    return require_context(*(RequirePermission(p) for p in permissions))


def require_any_permission(*permissions: str) -> Callable[..., RequestContext]:
    """Al menos uno de los permisos."""
    return require_context(RequireAnyPermission(tuple(permissions)))


def require_scope(scope: RoleScope) -> Callable[..., RequestContext]:
    return require_context(RequireScope(scope))


def require_module(module_name: str) -> Callable[..., RequestContext]:
    return require_context(RequireModule(module_name))
