"""
PostgreSQL Repository Implementations.

Raw parameterized SQL over the instrumented psycopg pool.
"""

from .audit_log import PostgresAuditLogRepository
from .feature_flag import PostgresFeatureFlagRepository
from .permission import PostgresPermissionRepository
from .user import PostgresUserRoleRepository

__all__ = [
    "PostgresAuditLogRepository",
    "PostgresFeatureFlagRepository",
    "PostgresPermissionRepository",
    "PostgresUserRoleRepository",
]
