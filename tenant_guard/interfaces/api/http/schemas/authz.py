"""
===============================================================================
TARJETA CRC — schemas/authz.py
===============================================================================

Módulo:
    DTOs HTTP del pipeline de autorización y del audit trail

Responsabilidades:
    - Contratos de salida de /session, /admin/audit-logs, /admin/system-logs
      y /tenants/.../modules.
    - Solo tipos y validación; sin infraestructura ni casos de uso.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class PrincipalRes(BaseModel):
    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role_name: str
    role_scope: str
    tenant_id: UUID | None = None


class SessionRes(BaseModel):
    principal: PrincipalRes
    bound_tenant_id: UUID | None = None
    state: str


class AuditLogRes(BaseModel):
    """Registro de auditoría serializable (con datos del usuario)."""

    id: UUID
    tenant_id: UUID | None = None
    user_id: UUID
    action: str
    resource: str
    resource_id: UUID | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None
    user_email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class AuditLogsRes(BaseModel):
    logs: list[AuditLogRes]
    count: int


class ModuleStatusRes(BaseModel):
    tenant_id: UUID
    module_name: str
    enabled: bool


class SystemLogRes(BaseModel):
    """Registro visto como evento de sistema (nivel y origen derivados)."""

    id: UUID
    timestamp: datetime | None = None
    level: str
    source: str
    message: str
    action: str
    resource: str
    resource_id: UUID | None = None
    tenant_id: UUID | None = None
    user_id: UUID
    user_email: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class SystemLogsRes(BaseModel):
    system_logs: list[SystemLogRes]
    count: int


class SystemLogsSummaryRes(BaseModel):
    days: int
    total: int
    successful: int
    errors: int
    auth_events: int
