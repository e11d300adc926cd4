# tenant_guard/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones internas del servicio
===============================================================================

Objetivo
--------
Errores internos con forma estable:
- error_code fijo por clase (lo usan handlers y métricas)
- error_id para correlacionar respuesta <-> log
- message legible, sin secretos

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  TenantGuardError + subclases de infraestructura

Responsabilidades:
  - Base común para errores de storage y de lectura de auditoría
  - Guardar la excepción original para logs (nunca para el cliente)

Colaboradores:
  - api/exception_handlers.py (mapea a problem+json)
  - identity/errors.py (taxonomía de autorización, hereda de acá)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class TenantGuardError(Exception):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      TenantGuardError

    Responsabilidades:
      - Base para errores internos del servicio
      - Proveer error_code + error_id + message

    Colaboradores:
      - api/exception_handlers.py
    ----------------------------------------------------------------------------
    """

    error_code: str = "TENANT_GUARD_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class DatabaseError(TenantGuardError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class AuditQueryFailed(TenantGuardError):
    """La lectura del audit trail no pudo completarse (storage caído, timeout)."""

    error_code: str = "AUDIT_QUERY_FAILED"
