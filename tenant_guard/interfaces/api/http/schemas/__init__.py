"""DTOs HTTP (pydantic) del servicio. Sin dependencias de infraestructura."""

from .authz import (
    AuditLogRes,
    AuditLogsRes,
    ModuleStatusRes,
    PrincipalRes,
    SessionRes,
    SystemLogRes,
    SystemLogsRes,
    SystemLogsSummaryRes,
)

__all__ = [
    "AuditLogRes",
    "AuditLogsRes",
    "ModuleStatusRes",
    "PrincipalRes",
    "SessionRes",
    "SystemLogRes",
    "SystemLogsRes",
    "SystemLogsSummaryRes",
]
