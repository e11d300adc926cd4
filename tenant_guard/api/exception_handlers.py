"""
===============================================================================
TARJETA CRC — tenant_guard/api/exception_handlers.py (Manejo Centralizado)
===============================================================================

Responsabilidades:
  - AccessDenied -> 401/403 con su código estable y detalle público.
  - DatabaseError / AuditQueryFailed -> 503 con error_id para los logs.
  - Query params inválidos -> 422 VALIDATION_ERROR.
  - Cualquier otra excepción -> 500 sin detalles internos en producción.

Colaboradores:
  - crosscutting.error_responses.problem_response
  - crosscutting.exceptions, identity.errors
===============================================================================
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import ErrorCode, problem_response, request_id_of
from ..crosscutting.exceptions import AuditQueryFailed, DatabaseError, TenantGuardError
from ..crosscutting.logger import logger
from ..identity.errors import AccessDenied

# (status, código, detalle público) por tipo de error de servicio.
_SERVICE_ERRORS: tuple[tuple[type[TenantGuardError], int, ErrorCode, str], ...] = (
    (
        AuditQueryFailed,
        503,
        ErrorCode.AUDIT_QUERY_FAILED,
        "No se pudo consultar el registro de auditoría",
    ),
    (DatabaseError, 503, ErrorCode.DATABASE_ERROR, "Falla en operación de base de datos"),
    (TenantGuardError, 500, ErrorCode.INTERNAL_ERROR, "Error interno."),
)


async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    """
    Solo sale exc.public_detail: exc.message puede distinguir "usuario
    inactivo" de "token inválido" y se queda en el log del pipeline.
    """
    return problem_response(
        request,
        status_code=exc.status_code,
        code=ErrorCode(exc.error_code),
        detail=exc.public_detail,
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


async def service_error_handler(request: Request, exc: TenantGuardError) -> JSONResponse:
    status_code, code, detail = next(
        (status, code, detail)
        for error_type, status, code, detail in _SERVICE_ERRORS
        if isinstance(exc, error_type)
    )
    logger.error(
        "Error de servicio",
        extra={"code": code.value, "error_id": exc.error_id, "error": exc.message},
    )
    return problem_response(
        request,
        status_code=status_code,
        code=code,
        detail=detail,
        errors=[{"error_id": exc.error_id, "request_id": request_id_of(request)}],
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return problem_response(
        request,
        status_code=422,
        code=ErrorCode.VALIDATION_ERROR,
        detail="Parámetros inválidos",
        errors=errors,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Excepción no controlada", exc_info=exc, extra={"error": str(exc)})
    detail = "Error interno." if get_settings().is_production() else str(exc)
    return problem_response(
        request, status_code=500, code=ErrorCode.INTERNAL_ERROR, detail=detail
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessDenied, access_denied_handler)
    app.add_exception_handler(TenantGuardError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers"]
