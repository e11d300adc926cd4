"""
===============================================================================
TARJETA CRC — identity/permissions.py
===============================================================================

Módulo:
    Permission Evaluator + Scope Evaluator

Responsabilidades:
    - Decidir si un principal tiene un permiso (match EXACTO de nombre).
    - Variante "alguno de" para endpoints que aceptan varios permisos.
    - Exigir un alcance de rol (platform / tenant) por igualdad simple.

Colaboradores:
    - domain.repositories.PermissionLookup
    - identity.principal.Principal / RoleScope
    - identity.errors: InsufficientPermission, ScopeMismatch

Reglas:
    - Plataforma -> permitido siempre, sin consultar el storage.
    - Tenant -> un lookup por evaluación contra role_id (sin cache).
    - "manage_x" NO implica "update_x"/"delete_x": si un endpoint acepta
      ambos, lo declara con require_any / RequireAnyPermission.
===============================================================================
"""

from __future__ import annotations

from typing import Sequence

from ..domain.repositories import PermissionLookup
from .errors import InsufficientPermission, ScopeMismatch
from .principal import Principal, RoleScope


class PermissionEvaluator:
    def __init__(self, lookup: PermissionLookup):
        self._lookup = lookup

    def is_allowed(self, principal: Principal, permission: str) -> bool:
        if principal.is_platform:
            return True
        return self._lookup.has_grant(principal.role_id, permission)

    def is_allowed_any(self, principal: Principal, permissions: Sequence[str]) -> bool:
        if principal.is_platform:
            return True
        if not permissions:
            return False
        return self._lookup.has_any_grant(principal.role_id, list(permissions))

    def require(self, principal: Principal, permission: str) -> None:
        if not self.is_allowed(principal, permission):
            raise InsufficientPermission(permission)

    def require_any(self, principal: Principal, permissions: Sequence[str]) -> None:
        if not self.is_allowed_any(principal, permissions):
            raise InsufficientPermission(tuple(permissions))


class ScopeEvaluator:
    """Sin precedencia: platform no "contiene" a tenant."""

    def require(self, principal: Principal, scope: RoleScope) -> None:
        if principal.role_scope != scope:
            raise ScopeMismatch(
                required=RoleScope(scope).value, actual=principal.role_scope.value
            )
