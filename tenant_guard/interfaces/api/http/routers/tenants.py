"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/tenants.py
===============================================================================

Name:
    Tenants Router (módulos habilitados)

Responsibilities:
    - GET /tenants/{tenant_id}/modules/{module_name}: estado de un módulo.
    - Solo el propio tenant (o plataforma) puede consultarlo.
    - Cada consulta queda auditada (VIEW / TENANT_FEATURE), éxito o falla.

Collaborators:
    - identity.pipeline.AuthorizationPipeline.execute + AuditSpec
    - identity.dependencies.require_tenant_access (tenant del path como check)
    - domain.repositories.FeatureFlagLookup
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path

from .....container import get_authorization_pipeline, get_feature_flag_lookup
from .....domain.repositories import FeatureFlagLookup
from .....identity.dependencies import require_tenant_access
from .....identity.pipeline import AuditSpec, AuthorizationPipeline
from .....identity.request_context import RequestContext
from ..schemas.authz import ModuleStatusRes

router = APIRouter()


@router.get(
    "/tenants/{tenant_id}/modules/{module_name}",
    response_model=ModuleStatusRes,
    tags=["tenants"],
)
def get_module_status(
    tenant_id: UUID,
    module_name: str = Path(..., min_length=1, max_length=100),
    ctx: RequestContext = Depends(require_tenant_access()),
    pipeline: AuthorizationPipeline = Depends(get_authorization_pipeline),
    flags: FeatureFlagLookup = Depends(get_feature_flag_lookup),
) -> ModuleStatusRes:
    def handler(_: RequestContext) -> ModuleStatusRes:
        return ModuleStatusRes(
            tenant_id=tenant_id,
            module_name=module_name,
            enabled=flags.is_enabled(tenant_id, module_name),
        )

    return pipeline.execute(
        ctx,
        handler,
        audit=AuditSpec(
            action="view",
            resource="tenant_feature",
            resource_id=tenant_id,
            details={"module_name": module_name},
            tenant_id=tenant_id,
        ),
    )
