"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .audit_log import InMemoryAuditLogRepository
from .identity_store import (
    InMemoryFeatureFlagRepository,
    InMemoryPermissionRepository,
    InMemoryUserRoleRepository,
)

__all__ = [
    "InMemoryAuditLogRepository",
    "InMemoryFeatureFlagRepository",
    "InMemoryPermissionRepository",
    "InMemoryUserRoleRepository",
]
