# tenant_guard/crosscutting/middleware.py
"""
===============================================================================
MÓDULO: Middleware de correlación HTTP
===============================================================================

Cada request recibe un request_id (el del cliente si es aceptable, si no
uno nuevo). Ese id aparece en los logs, en los errores problem+json, en la
procedencia de los registros de auditoría y en el header X-Request-Id.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  RequestContextMiddleware

Responsabilidades:
  - Resolver el request_id y guardarlo en request.state
  - Cargar/limpiar tenant_guard.context alrededor del request
  - Métricas HTTP y log de cierre (salvo /healthz y /metrics)

Colaboradores:
  - tenant_guard/context.py
  - crosscutting/metrics.py
  - identity/dependencies.py (lee request.state.request_id)
===============================================================================
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context
from .logger import logger
from .metrics import record_request_metrics

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LEN = 128
_QUIET_PATHS = frozenset({"/healthz", "/metrics"})


def resolve_request_id(incoming: str | None) -> str:
    """Reusa el id del cliente si es corto e imprimible."""
    candidate = (incoming or "").strip()
    if candidate and len(candidate) <= _MAX_REQUEST_ID_LEN and candidate.isprintable():
        return candidate
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request falló",
                extra={"status_code": status_code, "latency_ms": _elapsed_ms(started)},
            )
            raise
        else:
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            self._finish(request, status_code, started)

    @staticmethod
    def _finish(request: Request, status_code: int, started: float) -> None:
        path = request.url.path
        record_request_metrics(
            endpoint=path,
            method=request.method,
            status_code=status_code,
            latency_seconds=time.perf_counter() - started,
        )
        if path not in _QUIET_PATHS:
            logger.info(
                "request completado",
                extra={"status_code": status_code, "latency_ms": _elapsed_ms(started)},
            )
        clear_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
