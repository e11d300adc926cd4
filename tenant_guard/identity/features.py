"""
===============================================================================
TARJETA CRC — identity/features.py
===============================================================================

Módulo:
    Feature Gate (módulos habilitados por tenant)

Responsabilidades:
    - Exigir que el tenant del contexto tenga el módulo habilitado.
    - Exceptuar a plataforma (sin lookup).

Colaboradores:
    - domain.repositories.FeatureFlagLookup
    - identity.request_context.RequestContext
    - identity.errors: ModuleNotEnabled, NoTenantAssociation

Notas:
    - Flag ausente == deshabilitado.
===============================================================================
"""

from __future__ import annotations

from ..domain.repositories import FeatureFlagLookup
from .errors import ModuleNotEnabled, NoTenantAssociation
from .request_context import RequestContext


class FeatureGate:
    def __init__(self, lookup: FeatureFlagLookup):
        self._lookup = lookup

    def require(self, ctx: RequestContext, module_name: str) -> None:
        principal = ctx.require_principal()
        if principal.is_platform:
            return

        if ctx.tenant_id is None:
            raise NoTenantAssociation(
                f"Principal {principal.id} sin tenant para el módulo {module_name}"
            )

        if not self._lookup.is_enabled(ctx.tenant_id, module_name):
            raise ModuleNotEnabled(module_name)
