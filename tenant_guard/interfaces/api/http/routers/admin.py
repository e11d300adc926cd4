"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/admin.py
===============================================================================

Name:
    Admin Router (audit trail + system logs)

Responsibilities:
    - GET /admin/audit-logs: consulta del registro de auditoría.
    - Exigir el permiso view_audit_logs.
    - Aislamiento: un principal de tenant solo ve su propio tenant; pedir
      otro tenant_id lo rechaza el pipeline (CrossTenantAccessDenied).
    - GET /admin/system-logs[/summary]: el mismo trail como eventos de
      sistema (nivel y origen derivados), solo para plataforma.

Collaborators:
    - audit.AuditQueryService (container.get_audit_query_service)
    - identity.dependencies.require_requested_tenant / require_context
    - domain.audit.level_of / source_of
    - schemas.authz
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from .....audit import AuditQueryService
from .....container import get_audit_query_service
from .....domain.audit import AuditRecord, level_of, source_of
from .....identity.dependencies import require_context, require_requested_tenant
from .....identity.pipeline import RequirePermission, RequireScope
from .....identity.principal import RoleScope
from .....identity.request_context import RequestContext
from ..schemas.authz import (
    AuditLogRes,
    AuditLogsRes,
    SystemLogRes,
    SystemLogsRes,
    SystemLogsSummaryRes,
)

VIEW_AUDIT_LOGS = "view_audit_logs"
LEVEL_PATTERN = r"(?i)^(all|success|error|info)$"

router = APIRouter()

require_platform_audit_reader = require_context(
    RequireScope(RoleScope.PLATFORM), RequirePermission(VIEW_AUDIT_LOGS)
)


def _to_audit_log_res(record: AuditRecord) -> AuditLogRes:
    return AuditLogRes(
        id=record.id,
        tenant_id=record.tenant_id,
        user_id=record.actor_user_id,
        action=record.action,
        resource=record.resource,
        resource_id=record.resource_id,
        details=record.details or {},
        ip_address=record.ip_address,
        user_agent=record.user_agent,
        created_at=record.created_at,
        user_email=record.user_email,
        first_name=record.first_name,
        last_name=record.last_name,
    )


def _to_system_log_res(record: AuditRecord) -> SystemLogRes:
    message = f"{record.action} {record.resource}"
    if record.user_email:
        message += f" by {record.user_email}"
    return SystemLogRes(
        id=record.id,
        timestamp=record.created_at,
        level=level_of(record.action).value,
        source=source_of(record.action, record.resource).value,
        message=message,
        action=record.action,
        resource=record.resource,
        resource_id=record.resource_id,
        tenant_id=record.tenant_id,
        user_id=record.actor_user_id,
        user_email=record.user_email,
        details=record.details or {},
        ip_address=record.ip_address,
        user_agent=record.user_agent,
    )


@router.get("/admin/audit-logs", response_model=AuditLogsRes, tags=["admin"])
def list_audit_logs(
    days: int | None = Query(None, ge=1, le=3650),
    action: str | None = Query(None, max_length=100),
    resource: str | None = Query(None, max_length=100),
    user_id: UUID | None = Query(None),
    user_email: str | None = Query(None, max_length=255),
    search: str | None = Query(None, max_length=255),
    tenant_id: UUID | None = Query(None),
    limit: int | None = Query(None, ge=1),
    ctx: RequestContext = Depends(
        require_requested_tenant(RequirePermission(VIEW_AUDIT_LOGS))
    ),
    service: AuditQueryService = Depends(get_audit_query_service),
) -> AuditLogsRes:
    if tenant_id is None and not ctx.require_principal().is_platform:
        tenant_id = ctx.tenant_id

    filters = service.build_filters(
        days=days,
        action=action,
        resource=resource,
        user_id=user_id,
        user_email=user_email,
        search=search,
        tenant_id=tenant_id,
        limit=limit,
    )
    records = service.query(filters)
    return AuditLogsRes(
        logs=[_to_audit_log_res(r) for r in records],
        count=len(records),
    )


@router.get("/admin/system-logs", response_model=SystemLogsRes, tags=["admin"])
def list_system_logs(
    days: int | None = Query(None, ge=1, le=3650),
    action: str | None = Query(None, max_length=100),
    resource: str | None = Query(None, max_length=100),
    level: str | None = Query(None, pattern=LEVEL_PATTERN),
    search: str | None = Query(None, max_length=255),
    limit: int | None = Query(None, ge=1),
    ctx: RequestContext = Depends(require_platform_audit_reader),
    service: AuditQueryService = Depends(get_audit_query_service),
) -> SystemLogsRes:
    filters = service.build_system_log_filters(
        days=days,
        action=action,
        resource=resource,
        level=level,
        keyword=search,
        limit=limit,
    )
    records = service.query(filters)
    return SystemLogsRes(
        system_logs=[_to_system_log_res(r) for r in records],
        count=len(records),
    )


@router.get(
    "/admin/system-logs/summary", response_model=SystemLogsSummaryRes, tags=["admin"]
)
def system_logs_summary(
    days: int | None = Query(None, ge=1, le=3650),
    ctx: RequestContext = Depends(require_platform_audit_reader),
    service: AuditQueryService = Depends(get_audit_query_service),
) -> SystemLogsSummaryRes:
    summary = service.summarize(days)
    return SystemLogsSummaryRes(
        days=summary.since_days,
        total=summary.total,
        successful=summary.successful,
        errors=summary.errors,
        auth_events=summary.auth_events,
    )
