"""
===============================================================================
TARJETA CRC — tenant_guard/audit.py (Audit Recorder + lectura del trail)
===============================================================================

Responsabilidades:
  - Construir AuditRecord con formato consistente (MAYÚSCULAS, details JSON-safe).
  - Resolver el tenant del registro: override explícito (solo plataforma)
    -> tenant del principal.
  - Entregar el registro al dispatcher (cola + worker); nunca bloquear ni lanzar.
  - Lectura: normalizar filtros, aplicar límites y traducir fallas de storage.
  - Vista "system logs": filtros por nivel derivado y resumen por ventana.

Colaboradores:
  - domain.audit.AuditRecord / AuditQueryFilters
  - domain.repositories.AuditQueryRepository
  - infrastructure.queue.audit_dispatcher (implementaciones de AuditDispatcher)
  - identity.principal.Principal
  - crosscutting.logger.logger

Reglas:
  - Falta action, resource o id del principal -> el registro se descarta con warning.
  - Escritura best-effort: una falla de auditoría NUNCA rompe la operación.
  - Lectura estricta: una falla de storage se propaga como AuditQueryFailed.
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterator, Protocol
from uuid import UUID, uuid4

from .crosscutting.exceptions import AuditQueryFailed, DatabaseError
from .crosscutting.logger import logger
from .domain.audit import AuditQueryFilters, AuditRecord, AuditSummary, LogLevel
from .domain.repositories import AuditQueryRepository
from .identity.principal import Principal

# R: valor que los clientes mandan en los selects de "todas las acciones".
ALL_SENTINEL = "all"


class AuditDispatcher(Protocol):
    """Entrega registros al sink. submit() nunca bloquea ni lanza."""

    def submit(self, record: AuditRecord) -> bool: ...

    def close(self, timeout: float | None = None) -> bool: ...


def _sanitize(value: Any) -> Any:
    """
    Convierte valores a tipos serializables para JSON.
    - primitives -> OK
    - fechas/UUID -> ISO / str
    - dict/list/tuple -> recursivo
    - otros -> str(value)
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize(v) for v in value]

    return str(value)


def normalize_label(value: str | None) -> str | None:
    """ "  view " -> "VIEW"; vacío -> None."""
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned.upper() if cleaned else None


def normalize_filter(value: str | None) -> str | None:
    """Como normalize_label, pero "all" (cualquier caso) significa sin filtro."""
    if value is not None and value.strip().lower() == ALL_SENTINEL:
        return None
    return normalize_label(value)


def _coerce_resource_id(value: UUID | str | None) -> tuple[UUID | None, str | None]:
    """(uuid, referencia cruda). Los ids que no son UUID van a details."""
    if value is None or isinstance(value, UUID):
        return value, None
    try:
        return UUID(str(value)), None
    except ValueError:
        return None, str(value)


def _record_tenant(principal: Principal, override: UUID | None) -> UUID | None:
    """
    Solo plataforma puede atribuir el registro a otro tenant.
    Un principal de tenant siempre queda en su propio tenant.
    """
    if override is None or override == principal.tenant_id:
        return principal.tenant_id
    if principal.is_platform:
        return override
    logger.warning(
        "override de tenant ignorado para principal de tenant",
        extra={
            "user_id": str(principal.id),
            "tenant_id": str(principal.tenant_id),
            "requested_tenant_id": str(override),
        },
    )
    return principal.tenant_id


class AuditRecorder:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AuditRecorder

    Responsabilidades:
      - Validar y normalizar la entrada
      - Construir el AuditRecord
      - Hacer handoff al dispatcher (no espera la escritura)

    Colaboradores:
      - AuditDispatcher
    ----------------------------------------------------------------------------
    """

    def __init__(self, dispatcher: AuditDispatcher):
        self._dispatcher = dispatcher

    def record(
        self,
        action: str | None,
        resource: str | None,
        *,
        principal: Principal | None,
        resource_id: UUID | str | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        tenant_id: UUID | None = None,
    ) -> bool:
        """
        Acepta el registro para escritura. True si fue entregado al dispatcher.

        Nunca lanza: cualquier problema se loguea y devuelve False.
        """
        try:
            norm_action = normalize_label(action)
            norm_resource = normalize_label(resource)
            actor_id = getattr(principal, "id", None)

            if not norm_action or not norm_resource or actor_id is None:
                logger.warning(
                    "registro de auditoría descartado: faltan campos",
                    extra={
                        "audit_action": norm_action,
                        "audit_resource": norm_resource,
                        "has_actor": actor_id is not None,
                    },
                )
                return False

            payload = _sanitize(details or {})
            parsed_resource_id, resource_ref = _coerce_resource_id(resource_id)
            if resource_ref is not None:
                payload["resource_ref"] = resource_ref

            audit_record = AuditRecord(
                id=uuid4(),
                tenant_id=_record_tenant(principal, tenant_id),
                actor_user_id=actor_id,
                action=norm_action,
                resource=norm_resource,
                resource_id=parsed_resource_id,
                details=payload,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return self._dispatcher.submit(audit_record)
        except Exception as exc:
            # Best-effort: logueamos y seguimos.
            logger.warning(
                "Falló la emisión del registro de auditoría",
                extra={"audit_action": action, "error": str(exc)},
            )
            return False


class AuditQueryService:
    """Lectura del audit trail con límites de servidor."""

    def __init__(
        self,
        repository: AuditQueryRepository,
        *,
        default_days: int = 30,
        max_limit: int = 1000,
        system_log_days: int = 7,
        system_log_limit: int = 100,
    ):
        self._repository = repository
        self._default_days = default_days
        self._max_limit = max_limit
        self._system_log_days = system_log_days
        self._system_log_limit = system_log_limit

    def build_filters(
        self,
        *,
        days: int | None = None,
        action: str | None = None,
        resource: str | None = None,
        user_id: UUID | None = None,
        user_email: str | None = None,
        search: str | None = None,
        tenant_id: UUID | None = None,
        limit: int | None = None,
    ) -> AuditQueryFilters:
        if days is not None and days <= 0:
            raise ValueError("days debe ser mayor a 0")
        if limit is not None and limit <= 0:
            raise ValueError("limit debe ser mayor a 0")

        return AuditQueryFilters(
            since_days=days or self._default_days,
            limit=min(limit or self._max_limit, self._max_limit),
            tenant_id=tenant_id,
            action=normalize_filter(action),
            resource=normalize_filter(resource),
            user_id=user_id,
            user_email=_clean_text(user_email),
            search=_clean_text(search),
        )

    def build_system_log_filters(
        self,
        *,
        days: int | None = None,
        action: str | None = None,
        resource: str | None = None,
        level: str | None = None,
        keyword: str | None = None,
        limit: int | None = None,
    ) -> AuditQueryFilters:
        """
        Vista "system logs" (plataforma): ventana y límite propios, filtro por
        nivel derivado y búsqueda libre sobre email, action y resource.

        Raises:
            ValueError: nivel desconocido o valores no positivos.
        """
        filters = self.build_filters(
            days=days if days is not None else self._system_log_days,
            action=action,
            resource=resource,
            limit=limit if limit is not None else self._system_log_limit,
        )
        return replace(filters, keyword=_clean_text(keyword), level=parse_level(level))

    def query(self, filters: AuditQueryFilters) -> list[AuditRecord]:
        if filters.limit > self._max_limit:
            filters = replace(filters, limit=self._max_limit)

        with _storage_failures("Falló la consulta de auditoría"):
            records = self._repository.query(filters)

        return records[: filters.limit]

    def summarize(self, days: int | None = None) -> AuditSummary:
        if days is not None and days <= 0:
            raise ValueError("days debe ser mayor a 0")

        with _storage_failures("Falló el resumen de auditoría"):
            return self._repository.summarize(days or self._system_log_days)


def parse_level(value: str | None) -> LogLevel | None:
    """ "success" -> LogLevel.SUCCESS; vacío o "all" -> None."""
    normalized = normalize_filter(value)
    if normalized is None:
        return None
    try:
        return LogLevel(normalized)
    except ValueError:
        raise ValueError(f"level desconocido: {value!r}") from None


def _clean_text(value: str | None) -> str | None:
    return (value or "").strip() or None


@contextmanager
def _storage_failures(message: str) -> Iterator[None]:
    try:
        yield
    except DatabaseError as exc:
        logger.error(message, extra={"error": str(exc), "error_id": exc.error_id})
        raise AuditQueryFailed(
            "No se pudo consultar el registro de auditoría",
            original_error=exc,
        ) from exc
