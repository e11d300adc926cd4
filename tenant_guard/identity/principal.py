"""
===============================================================================
TARJETA CRC — identity/principal.py
===============================================================================

Módulo:
    Principal resuelto (identidad + rol + tenant)

Responsabilidades:
    - Definir RoleScope (platform | tenant).
    - Definir Principal: la identidad verificada de un request, inmutable.

Colaboradores:
    - identity/resolver.py: construye el Principal a partir del token.
    - infrastructure/repositories/*/user.py: mapean filas -> Principal.
    - identity/tenant_isolation.py, permissions.py, features.py: lo consumen.

Notas:
    - Se crea una vez por request y nunca se persiste.
    - tenant_id es None para principals de plataforma (y para datos inválidos,
      que la compuerta de aislamiento rechaza).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class RoleScope(str, Enum):
    """Alcance de un rol: plataforma (cross-tenant) o tenant."""

    PLATFORM = "platform"
    TENANT = "tenant"


@dataclass(frozen=True, slots=True)
class Principal:
    """Usuario activo + rol, tal como lo devuelve la búsqueda de identidad."""

    id: UUID
    email: str
    role_id: UUID
    role_name: str
    role_scope: RoleScope
    tenant_id: UUID | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_platform(self) -> bool:
        return self.role_scope == RoleScope.PLATFORM
