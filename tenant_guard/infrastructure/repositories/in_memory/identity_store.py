"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/identity_store.py
============================================================
Classes: InMemoryUserRoleRepository, InMemoryPermissionRepository,
         InMemoryFeatureFlagRepository

Responsibilities:
  - Replicar en memoria users/roles, role_permissions y tenant_features.
  - Responder los lookups con la misma semántica que Postgres:
      * usuario inactivo -> None
      * grant por nombre exacto
      * flag ausente -> deshabilitado
  - Contar consultas en lookup_calls.

Constraints / Notes:
  - Thread-safe: Lock protege los diccionarios internos.
  - Para tests / desarrollo local. Los datos se pierden al reiniciar.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Dict, Iterable, Sequence, Set, Tuple
from uuid import UUID

from ....identity.principal import Principal


class InMemoryUserRoleRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, Tuple[Principal, bool]] = {}
        self.lookup_calls = 0

    def add_user(self, principal: Principal, *, is_active: bool = True) -> Principal:
        with self._lock:
            self._users[principal.id] = (principal, is_active)
        return principal

    def set_active(self, user_id: UUID, is_active: bool) -> None:
        with self._lock:
            principal, _ = self._users[user_id]
            self._users[user_id] = (principal, is_active)

    def set_tenant(self, user_id: UUID, tenant_id: UUID | None) -> None:
        with self._lock:
            principal, active = self._users[user_id]
            self._users[user_id] = (replace(principal, tenant_id=tenant_id), active)

    def find_active_user_with_role(self, user_id: UUID) -> Principal | None:
        with self._lock:
            self.lookup_calls += 1
            entry = self._users.get(user_id)
        if entry is None:
            return None
        principal, is_active = entry
        return principal if is_active else None


class InMemoryPermissionRepository:
    def __init__(self, grants: Dict[UUID, Iterable[str]] | None = None) -> None:
        self._lock = Lock()
        self._grants: Dict[UUID, Set[str]] = {
            role_id: set(names) for role_id, names in (grants or {}).items()
        }
        self.lookup_calls = 0

    def grant(self, role_id: UUID, *permissions: str) -> None:
        with self._lock:
            self._grants.setdefault(role_id, set()).update(permissions)

    def revoke(self, role_id: UUID, permission: str) -> None:
        with self._lock:
            self._grants.get(role_id, set()).discard(permission)

    def has_grant(self, role_id: UUID, permission: str) -> bool:
        with self._lock:
            self.lookup_calls += 1
            return permission in self._grants.get(role_id, set())

    def has_any_grant(self, role_id: UUID, permissions: Sequence[str]) -> bool:
        with self._lock:
            self.lookup_calls += 1
            granted = self._grants.get(role_id, set())
            return any(name in granted for name in permissions)


class InMemoryFeatureFlagRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._flags: Dict[Tuple[UUID, str], bool] = {}
        self.lookup_calls = 0

    def set_flag(self, tenant_id: UUID, module_name: str, enabled: bool = True) -> None:
        with self._lock:
            self._flags[(tenant_id, module_name)] = enabled

    def is_enabled(self, tenant_id: UUID, module_name: str) -> bool:
        with self._lock:
            self.lookup_calls += 1
            return self._flags.get((tenant_id, module_name), False)
