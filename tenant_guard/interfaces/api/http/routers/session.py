"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/session.py
===============================================================================

Name:
    Session Router

Responsibilities:
    - GET /session: devuelve el principal resuelto y el tenant ligado.
    - Sirve para que el cliente verifique su token sin tocar datos de negocio.

Collaborators:
    - identity.dependencies.require_context
    - schemas.authz
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .....identity.dependencies import require_context
from .....identity.request_context import RequestContext
from ..schemas.authz import PrincipalRes, SessionRes

router = APIRouter()


@router.get("/session", response_model=SessionRes, tags=["session"])
def get_session(ctx: RequestContext = Depends(require_context())) -> SessionRes:
    principal = ctx.require_principal()
    return SessionRes(
        principal=PrincipalRes(
            id=principal.id,
            email=principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            role_name=principal.role_name,
            role_scope=principal.role_scope.value,
            tenant_id=principal.tenant_id,
        ),
        bound_tenant_id=ctx.tenant_id,
        state=ctx.state.value,
    )
