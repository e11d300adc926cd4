"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría (Dominio)

Responsabilidades:
    - Definir AuditRecord (una fila del audit trail).
    - Definir AuditQueryFilters (contrato de lectura).
    - Derivar nivel/origen de un registro y el resumen por ventana
      (vista "system logs").

Colaboradores:
    - domain.repositories.AuditSink / AuditQueryRepository
    - tenant_guard/audit.py: construye registros y consultas.
    - infra repos: mapean hacia/desde la tabla audit_logs.

Notas:
    - Append-only: no se edita ni se borra.
    - action/resource se guardan en MAYÚSCULAS; la normalización ocurre antes
      de construir el registro.
    - user_email / first_name / last_name solo se completan en lecturas (join).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """Registro de auditoría de una acción sobre un recurso."""

    id: UUID
    actor_user_id: UUID
    action: str
    resource: str
    tenant_id: UUID | None = None
    resource_id: UUID | None = None
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None
    user_email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True, slots=True)
class AuditQueryFilters:
    """
    Filtros de lectura del audit trail.

    action/resource llegan ya normalizados (MAYÚSCULAS, "all" -> None).
    search: email, nombre o apellido. keyword: email, action o resource.
    level: nivel derivado (ver level_of).
    """

    since_days: int = 30
    limit: int = 1000
    tenant_id: UUID | None = None
    action: str | None = None
    resource: str | None = None
    user_id: UUID | None = None
    user_email: str | None = None
    search: str | None = None
    keyword: str | None = None
    level: LogLevel | None = None


# ---------------------------------------------------------------------------
# Vista "system logs": nivel y origen derivados de action/resource
# ---------------------------------------------------------------------------
class LogLevel(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    INFO = "INFO"


class LogSource(str, Enum):
    AUTH = "AUTH"
    RBAC = "RBAC"
    HTTP = "HTTP"


MUTATING_ACTIONS = frozenset({"CREATE", "UPDATE", "DELETE"})
AUTH_SOURCE_ACTIONS = MUTATING_ACTIONS | {"LOGIN"}
AUTH_EVENT_ACTIONS = frozenset({"LOGIN", "LOGIN_FAILED"})
RBAC_RESOURCES = frozenset({"USER", "ROLE", "PERMISSION"})
ERROR_MARKER = "ERROR"


def level_of(action: str) -> LogLevel:
    if action in MUTATING_ACTIONS:
        return LogLevel.SUCCESS
    if ERROR_MARKER in action:
        return LogLevel.ERROR
    return LogLevel.INFO


def source_of(action: str, resource: str) -> LogSource:
    if action in AUTH_SOURCE_ACTIONS:
        return LogSource.AUTH
    if resource in RBAC_RESOURCES:
        return LogSource.RBAC
    return LogSource.HTTP


@dataclass(frozen=True, slots=True)
class AuditSummary:
    """Conteos sobre la ventana `since_days` (todos los tenants)."""

    since_days: int
    total: int = 0
    successful: int = 0
    errors: int = 0
    auth_events: int = 0
