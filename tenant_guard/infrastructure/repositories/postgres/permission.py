"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/permission.py
============================================================
Class: PostgresPermissionRepository

Responsibilities:
  - Responder si un rol tiene un permiso (o alguno de varios), por nombre exacto.

Collaborators:
  - tablas role_permissions + permissions
  - PostgresRepository (pool + errores)

Constraints / Notes:
  - SELECT 1 ... LIMIT 1: solo interesa la existencia.
  - ANY(%s) recibe una lista (psycopg la adapta a array).
============================================================
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from ._base import PostgresRepository

_HAS_GRANT = """
    SELECT 1
    FROM role_permissions rp
    JOIN permissions p ON p.id = rp.permission_id
    WHERE rp.role_id = %s AND p.name = %s
    LIMIT 1
"""

_HAS_ANY_GRANT = """
    SELECT 1
    FROM role_permissions rp
    JOIN permissions p ON p.id = rp.permission_id
    WHERE rp.role_id = %s AND p.name = ANY(%s)
    LIMIT 1
"""


class PostgresPermissionRepository(PostgresRepository):
    """Implementa PermissionLookup."""

    def has_grant(self, role_id: UUID, permission: str) -> bool:
        row = self._fetchone(
            query=_HAS_GRANT,
            params=[role_id, permission],
            error_message="PostgresPermissionRepository: Failed to check permission",
            extra={"role_id": str(role_id), "permission": permission},
        )
        return row is not None

    def has_any_grant(self, role_id: UUID, permissions: Sequence[str]) -> bool:
        if not permissions:
            return False
        row = self._fetchone(
            query=_HAS_ANY_GRANT,
            params=[role_id, list(permissions)],
            error_message="PostgresPermissionRepository: Failed to check permissions",
            extra={"role_id": str(role_id), "permissions": list(permissions)},
        )
        return row is not None
