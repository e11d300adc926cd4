# tenant_guard/crosscutting/logger.py
"""
===============================================================================
MÓDULO: Logger JSON del servicio
===============================================================================

Objetivo
--------
Cada decisión del pipeline (rechazo, usuario inactivo, auditoría descartada)
sale como una línea JSON con request_id para poder seguirla en los logs.
Los bearer tokens y el secreto JWT nunca llegan al output.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  JSONFormatter + logger global

Responsabilidades:
  - Serializar LogRecord a JSON con los campos de `extra`
  - Sumar request_id / method / path desde tenant_guard.context
  - Redactar credenciales y acotar strings/anidamiento

Colaboradores:
  - tenant_guard/context.py
  - crosscutting/config.py (log_level, log_json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

# Atributos que todo LogRecord trae de fábrica; lo demás vino por `extra`.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_REDACTED = "***REDACTADO***"
_MAX_STR = 4_000
_MAX_DEPTH = 4

SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "token",
        "access_token",
        "refresh_token",
        "bearer",
        "credential",
        "secret",
        "jwt_secret",
        "password",
        "cookie",
    }
)


def redact(value: Any, *, key: str | None = None, depth: int = 0) -> Any:
    """Versión segura de `value` para meter en el JSON."""
    if key is not None and key.lower() in SENSITIVE_KEYS:
        return _REDACTED
    if depth > _MAX_DEPTH:
        return "***TRUNCADO***"

    if isinstance(value, str):
        return value if len(value) <= _MAX_STR else value[:_MAX_STR] + "…(truncado)"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes {len(value)}B>"
    if isinstance(value, dict):
        return {str(k): redact(v, key=str(k), depth=depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact(v, key=key, depth=depth + 1) for v in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return str(value)


def _exception_block(exc_info) -> dict[str, Any]:
    exc_type, exc, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc) if exc else None,
        "stacktrace": traceback.format_exception(*exc_info),
    }


class JSONFormatter(logging.Formatter):
    """Una línea JSON por evento; `extra` se copia redactado."""

    def format(self, record: logging.LogRecord) -> str:
        from ..context import get_context_dict

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": os.getpid(),
            **get_context_dict(),
        }

        payload.update(
            (name, redact(value, key=name))
            for name, value in vars(record).items()
            if name not in _STANDARD_ATTRS
        )

        if record.exc_info:
            payload["exception"] = _exception_block(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":"))


def _build_handler(log_json: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    return handler


def setup_logger(name: str = "tenant-guard") -> logging.Logger:
    """Logger del servicio. Reimportar no duplica handlers."""
    from .config import get_settings

    settings = get_settings()
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO))
    if not log.handlers:
        log.addHandler(_build_handler(settings.log_json))
    return log


logger = setup_logger()
