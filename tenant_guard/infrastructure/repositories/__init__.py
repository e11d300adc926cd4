"""
============================================================
TARJETA CRC
============================================================
Package: tenant_guard.infrastructure.repositories

Responsibilities:
- Exponer implementaciones de los lookups y del audit log (Postgres e InMemory)
  en un único punto de importación.

Collaborators:
- Repositorios Postgres (SQL crudo)
- Repositorios InMemory (testing / desarrollo local)
============================================================
"""

from .in_memory import (
    InMemoryAuditLogRepository,
    InMemoryFeatureFlagRepository,
    InMemoryPermissionRepository,
    InMemoryUserRoleRepository,
)
from .postgres import (
    PostgresAuditLogRepository,
    PostgresFeatureFlagRepository,
    PostgresPermissionRepository,
    PostgresUserRoleRepository,
)

__all__ = [
    "InMemoryAuditLogRepository",
    "InMemoryFeatureFlagRepository",
    "InMemoryPermissionRepository",
    "InMemoryUserRoleRepository",
    "PostgresAuditLogRepository",
    "PostgresFeatureFlagRepository",
    "PostgresPermissionRepository",
    "PostgresUserRoleRepository",
]
