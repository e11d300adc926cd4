"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_log.py
============================================================
Class: PostgresAuditLogRepository

Responsibilities:
  - Insertar registros en audit_logs (append-only).
  - Listar registros con filtros opcionales + datos del usuario (LEFT JOIN users).
  - Orden estable: created_at DESC, id DESC.
  - Resumen por ventana (total, éxitos, errores, eventos de login).

Collaborators:
  - domain.audit.AuditRecord / AuditQueryFilters
  - psycopg.types.json.Json (details JSONB)
  - PostgresRepository (pool + errores)

Constraints / Notes:
  - Queries SIEMPRE parametrizadas; la ventana temporal usa make_interval.
  - user_email, search y keyword usan ILIKE con comodines escapados.
  - El nivel (SUCCESS / ERROR / INFO) se filtra con la misma regla que level_of.
  - created_at lo asigna la base (DEFAULT now()).
============================================================
"""

from __future__ import annotations

from psycopg.types.json import Json

from ....domain.audit import (
    AUTH_EVENT_ACTIONS,
    ERROR_MARKER,
    MUTATING_ACTIONS,
    AuditQueryFilters,
    AuditRecord,
    AuditSummary,
    LogLevel,
)
from ._base import PostgresRepository

_SELECT_COLUMNS = """
    a.id, a.tenant_id, a.user_id, a.action, a.resource, a.resource_id,
    a.details, a.ip_address, a.user_agent, a.created_at,
    u.email, u.first_name, u.last_name
"""


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


_WINDOW = "a.created_at >= now() - make_interval(days => %s::int)"


def _level_condition(level: LogLevel) -> tuple[str, list[object]]:
    mutating = sorted(MUTATING_ACTIONS)
    error_pattern = f"%{ERROR_MARKER}%"
    if level is LogLevel.SUCCESS:
        return "a.action = ANY(%s)", [mutating]
    if level is LogLevel.ERROR:
        return "a.action LIKE %s", [error_pattern]
    return "(NOT (a.action = ANY(%s)) AND a.action NOT LIKE %s)", [mutating, error_pattern]


def build_audit_query(filters: AuditQueryFilters) -> tuple[str, list[object]]:
    """Arma SELECT + params a partir de los filtros (expuesto para tests)."""
    conditions: list[str] = [_WINDOW]
    params: list[object] = [filters.since_days]

    if filters.tenant_id is not None:
        conditions.append("a.tenant_id = %s")
        params.append(filters.tenant_id)

    if filters.action:
        conditions.append("a.action = %s")
        params.append(filters.action)

    if filters.resource:
        conditions.append("a.resource = %s")
        params.append(filters.resource)

    if filters.user_id is not None:
        conditions.append("a.user_id = %s")
        params.append(filters.user_id)

    if filters.user_email:
        conditions.append("u.email ILIKE %s")
        params.append(_like_pattern(filters.user_email))

    if filters.search:
        pattern = _like_pattern(filters.search)
        conditions.append(
            "(u.email ILIKE %s OR u.first_name ILIKE %s OR u.last_name ILIKE %s)"
        )
        params.extend([pattern, pattern, pattern])

    if filters.keyword:
        pattern = _like_pattern(filters.keyword)
        conditions.append(
            "(u.email ILIKE %s OR a.action ILIKE %s OR a.resource ILIKE %s)"
        )
        params.extend([pattern, pattern, pattern])

    if filters.level is not None:
        condition, level_params = _level_condition(filters.level)
        conditions.append(condition)
        params.extend(level_params)

    query = f"""
        SELECT {_SELECT_COLUMNS}
        FROM audit_logs a
        LEFT JOIN users u ON u.id = a.user_id
        WHERE {' AND '.join(conditions)}
        ORDER BY a.created_at DESC, a.id DESC
        LIMIT %s
    """
    params.append(filters.limit)
    return query, params


def build_summary_query(since_days: int) -> tuple[str, list[object]]:
    query = f"""
        SELECT
            COUNT(*),
            COUNT(*) FILTER (WHERE a.action = ANY(%s)),
            COUNT(*) FILTER (WHERE a.action LIKE %s),
            COUNT(*) FILTER (WHERE a.action = ANY(%s))
        FROM audit_logs a
        WHERE {_WINDOW}
    """
    params: list[object] = [
        sorted(MUTATING_ACTIONS),
        f"%{ERROR_MARKER}%",
        sorted(AUTH_EVENT_ACTIONS),
        since_days,
    ]
    return query, params


def _row_to_record(row: tuple) -> AuditRecord:
    (
        record_id,
        tenant_id,
        user_id,
        action,
        resource,
        resource_id,
        details,
        ip_address,
        user_agent,
        created_at,
        email,
        first_name,
        last_name,
    ) = row
    return AuditRecord(
        id=record_id,
        tenant_id=tenant_id,
        actor_user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=created_at,
        user_email=email,
        first_name=first_name,
        last_name=last_name,
    )


class PostgresAuditLogRepository(PostgresRepository):
    """Implementa AuditSink + AuditQueryRepository."""

    def append(self, record: AuditRecord) -> None:
        self._execute(
            query="""
                INSERT INTO audit_logs
                    (id, tenant_id, user_id, action, resource, resource_id,
                     details, ip_address, user_agent)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            params=[
                record.id,
                record.tenant_id,
                record.actor_user_id,
                record.action,
                record.resource,
                record.resource_id,
                Json(record.details or {}),
                record.ip_address,
                record.user_agent,
            ],
            error_message="PostgresAuditLogRepository: Failed to append audit record",
            extra={
                "audit_id": str(record.id),
                "audit_action": record.action,
                "audit_resource": record.resource,
            },
        )

    def query(self, filters: AuditQueryFilters) -> list[AuditRecord]:
        if filters.limit <= 0:
            return []

        query, params = build_audit_query(filters)
        rows = self._fetchall(
            query=query,
            params=params,
            error_message="PostgresAuditLogRepository: Failed to list audit records",
            extra={
                "tenant_id": str(filters.tenant_id) if filters.tenant_id else None,
                "audit_action": filters.action,
                "since_days": filters.since_days,
                "limit": filters.limit,
            },
        )
        return [_row_to_record(row) for row in rows]

    def summarize(self, since_days: int) -> AuditSummary:
        query, params = build_summary_query(since_days)
        row = self._fetchone(
            query=query,
            params=params,
            error_message="PostgresAuditLogRepository: Failed to summarize audit records",
            extra={"since_days": since_days},
        )
        total, successful, errors, auth_events = row or (0, 0, 0, 0)
        return AuditSummary(
            since_days=since_days,
            total=total or 0,
            successful=successful or 0,
            errors=errors or 0,
            auth_events=auth_events or 0,
        )
