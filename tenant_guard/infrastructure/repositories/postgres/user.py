"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
============================================================
Class: PostgresUserRoleRepository

Responsibilities:
  - Cargar el usuario ACTIVO junto con su rol (users JOIN roles).
  - Mapear la fila -> Principal, validando RoleScope.

Collaborators:
  - identity.principal.Principal / RoleScope
  - PostgresRepository (pool + errores)

Constraints / Notes:
  - Inactivo o inexistente -> None (la política la decide el resolver).
  - Scope desconocido en DB -> DatabaseError (drift de datos).
============================================================
"""

from __future__ import annotations

from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....identity.principal import Principal, RoleScope
from ._base import PostgresRepository

_ACTIVE_USER_WITH_ROLE = """
    SELECT u.id, u.email, u.first_name, u.last_name, u.tenant_id,
           r.id, r.name, r.scope
    FROM users u
    JOIN roles r ON r.id = u.role_id
    WHERE u.id = %s AND u.is_active = true
"""


def _row_to_principal(row: tuple) -> Principal:
    try:
        scope = RoleScope(row[7])
    except ValueError as exc:
        raise DatabaseError(f"Invalid role scope in database: {row[7]}") from exc

    return Principal(
        id=row[0],
        email=row[1],
        first_name=row[2],
        last_name=row[3],
        tenant_id=row[4],
        role_id=row[5],
        role_name=row[6],
        role_scope=scope,
    )


class PostgresUserRoleRepository(PostgresRepository):
    """Implementa UserRoleLookup."""

    def find_active_user_with_role(self, user_id: UUID) -> Principal | None:
        row = self._fetchone(
            query=_ACTIVE_USER_WITH_ROLE,
            params=[user_id],
            error_message="PostgresUserRoleRepository: Failed to load user",
            extra={"user_id": str(user_id)},
        )
        return _row_to_principal(row) if row else None
