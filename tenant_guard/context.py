"""
===============================================================================
TARJETA CRC — tenant_guard/context.py (Correlación de logs por request)
===============================================================================

Responsabilidades:
  - Guardar request_id, método y path del request en curso.
  - Entregarlos al JSONFormatter sin pasarlos por parámetro.

Colaboradores:
  - crosscutting.middleware: set_request_context() / clear_context().
  - crosscutting.logger: get_context_dict().

Restricciones:
  - Solo datos de correlación. Principal y tenant viajan en
    identity.request_context.RequestContext.
  - El worker de auditoría corre en otro thread y no ve este contexto.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class LogCorrelation:
    request_id: str = ""
    method: str = ""
    path: str = ""


_EMPTY = LogCorrelation()
_current: ContextVar[LogCorrelation] = ContextVar("log_correlation", default=_EMPTY)


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    _current.set(
        LogCorrelation(request_id=request_id or "", method=method or "", path=path or "")
    )


def get_context_dict() -> dict[str, str]:
    """Solo las claves con valor."""
    return {key: value for key, value in asdict(_current.get()).items() if value}


def clear_context() -> None:
    _current.set(_EMPTY)
