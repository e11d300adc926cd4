# tenant_guard/crosscutting/error_responses.py
"""
===============================================================================
MÓDULO: Problem Details (RFC 7807) del servicio
===============================================================================

Todos los errores HTTP salen como application/problem+json con:
- "code": estable, el cliente decide con él (re-login, pedir permiso, reintentar)
- "errors": request_id / error_id para cruzar con los logs
- "detail": texto público; nunca distingue usuario inactivo de token inválido

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  ErrorCode + ErrorDetail + problem_response()

Responsabilidades:
  - Catálogo de códigos (401/403 del pipeline, 422, 5xx)
  - Armar el body RFC 7807 y la respuesta
  - Entradas OpenAPI compartidas por los routers

Colaboradores:
  - api/exception_handlers.py
  - interfaces/api/http/router.py
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    # 401: el cliente debe volver a autenticarse
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    EXPIRED_CREDENTIAL = "EXPIRED_CREDENTIAL"

    # 403: autenticado pero sin acceso
    ACCESS_DENIED = "ACCESS_DENIED"
    NO_TENANT_ASSOCIATION = "NO_TENANT_ASSOCIATION"
    SCOPE_MISMATCH = "SCOPE_MISMATCH"
    INSUFFICIENT_PERMISSION = "INSUFFICIENT_PERMISSION"
    MODULE_NOT_ENABLED = "MODULE_NOT_ENABLED"
    CROSS_TENANT_ACCESS = "CROSS_TENANT_ACCESS"

    VALIDATION_ERROR = "VALIDATION_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    AUDIT_QUERY_FAILED = "AUDIT_QUERY_FAILED"


class ErrorDetail(BaseModel):
    """Body RFC 7807 + `code` y `errors` propios."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None


def _openapi_entry(description: str) -> dict[str, Any]:
    return {
        "description": f"{description} (RFC7807)",
        "model": ErrorDetail,
        "content": {
            PROBLEM_JSON_MEDIA_TYPE: {
                "schema": {"$ref": "#/components/schemas/ErrorDetail"}
            }
        },
    }


OPENAPI_ERROR_RESPONSES = {
    "401": _openapi_entry("Credencial ausente, inválida o expirada"),
    "403": _openapi_entry("Acceso denegado por el pipeline"),
    "422": _openapi_entry("Parámetros inválidos"),
    "503": _openapi_entry("Storage no disponible"),
}


def request_id_of(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def problem_response(
    request: Request,
    *,
    status_code: int,
    code: ErrorCode,
    detail: str,
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Arma la respuesta problem+json; agrega el request_id si no vino en errors."""
    request_id = request_id_of(request)
    errors = list(errors or [])
    if request_id and not any("request_id" in item for item in errors):
        errors.append({"request_id": request_id})

    body = ErrorDetail(
        type=f"about:blank/{code.value.lower()}",
        title=code.value.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        code=code,
        instance=str(request.url),
        errors=errors or None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
