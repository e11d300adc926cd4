"""
===============================================================================
TARJETA CRC — identity/tenant_isolation.py
===============================================================================

Módulo:
    Tenant Isolation Gate

Responsabilidades:
    - Ligar el contexto al tenant del principal (y solo a ese).
    - Exceptuar a los principals de plataforma (operan cross-tenant).
    - Rechazar principals de tenant sin tenant asociado.
    - Guard adicional para rutas con tenant explícito: solo el propio tenant.

Colaboradores:
    - identity.request_context.RequestContext / PipelineState
    - identity.errors: NoTenantAssociation, CrossTenantAccessDenied

Notas:
    - Puro: no hace I/O.
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from .errors import CrossTenantAccessDenied, NoTenantAssociation
from .request_context import PipelineState, RequestContext


class TenantIsolationGate:
    def bind(self, ctx: RequestContext) -> RequestContext:
        principal = ctx.require_principal()

        if principal.is_platform:
            return ctx.advance(PipelineState.TENANT_BOUND, tenant_id=None)

        if principal.tenant_id is None:
            raise NoTenantAssociation(
                f"Principal {principal.id} de alcance tenant sin tenant_id"
            )

        return ctx.advance(PipelineState.TENANT_BOUND, tenant_id=principal.tenant_id)


def ensure_tenant_access(ctx: RequestContext, tenant_id: UUID) -> None:
    """
    Plataforma: pasa siempre. Tenant: solo si `tenant_id` es el propio.
    """
    principal = ctx.require_principal()
    if principal.is_platform:
        return
    if principal.tenant_id is None:
        raise NoTenantAssociation(
            f"Principal {principal.id} de alcance tenant sin tenant_id"
        )
    if principal.tenant_id != tenant_id:
        raise CrossTenantAccessDenied(tenant_id)
