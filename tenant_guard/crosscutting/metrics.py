"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) del pipeline de autorización y auditoría

Responsabilidades:
    - Definir métricas Prometheus en un registry privado.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO user_id, NO tenant_id, NO SQL completo).
    - Generar la respuesta de /metrics.

Colaboradores:
    - crosscutting.middleware: latencia y conteo HTTP.
    - identity.pipeline: rechazos por motivo.
    - infrastructure.queue.audit_dispatcher: resultado de cada escritura de auditoría.
    - infrastructure.db.instrumentation: duración de queries.

Notas:
    - Registry propio (no el global de prometheus_client).
    - Paths normalizados: tenant ids y UUIDs se colapsan a placeholders.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# ------------------------
# HTTP
# ------------------------
_requests_total = Counter(
    "tenant_guard_requests_total",
    "Total de requests HTTP",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "tenant_guard_request_latency_seconds",
    "Latencia de requests HTTP (segundos)",
    ["endpoint", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=_registry,
)

# ------------------------
# Autorización
# ------------------------
_authz_rejections_total = Counter(
    "authz_rejections_total",
    "Rechazos del pipeline de autorización por motivo",
    ["reason"],
    registry=_registry,
)

_authz_stage_latency = Histogram(
    "authz_pipeline_latency_seconds",
    "Duración de la evaluación completa del pipeline (segundos)",
    ["outcome"],
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
    registry=_registry,
)

# ------------------------
# Auditoría
# ------------------------
_audit_events_total = Counter(
    "audit_events_total",
    "Registros de auditoría por resultado (written/failed/dropped)",
    ["outcome"],
    registry=_registry,
)

# ------------------------
# DB
# ------------------------
_db_query_duration = Histogram(
    "tenant_guard_db_query_duration_seconds",
    "Duración de queries DB (segundos)",
    ["kind"],
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
    registry=_registry,
)


# -----------------------------------------------------------------------------
# API pública (helpers de registro)
# -----------------------------------------------------------------------------


def record_request_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    latency_seconds: float,
) -> None:
    """Registra métricas HTTP.

    - endpoint se normaliza para no explotar cardinalidad.
    - status se agrupa por 2xx/4xx/5xx.
    """
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized, method=method, status=_status_bucket(status_code)
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_authz_rejection(reason: str) -> None:
    """Cuenta un rechazo del pipeline. `reason` es el error_code (baja cardinalidad)."""
    _authz_rejections_total.labels(reason=reason).inc()


def observe_authz_latency(outcome: str, seconds: float) -> None:
    """outcome: "authorized" | "rejected"."""
    _authz_stage_latency.labels(outcome=outcome).observe(seconds)


def record_audit_event(outcome: str) -> None:
    """outcome: "written" | "failed" | "dropped"."""
    _audit_events_total.labels(outcome=outcome).inc()


def observe_db_query_duration(kind: str, seconds: float) -> None:
    """Observa duración de una query DB.

    Reglas:
      - `kind` debe ser baja cardinalidad (SELECT/INSERT/UPDATE/...).
      - NO incluir SQL completo.
    """
    _db_query_duration.labels(kind=(kind or "UNKNOWN").upper()).observe(seconds)


# -----------------------------------------------------------------------------
# Helpers internos
# -----------------------------------------------------------------------------

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


def _normalize_endpoint(path: str) -> str:
    """Reemplaza ids de tenant, UUIDs e ids numéricos por placeholders."""
    path = re.sub(r"/tenants/[^/]+", "/tenants/{tenant_id}", path)
    path = _UUID_RE.sub("{id}", path)
    path = re.sub(r"/\d+", "/{id}", path)
    return path


def _status_bucket(code: int) -> str:
    if 200 <= code < 300:
        return "2xx"
    if 300 <= code < 400:
        return "3xx"
    if 400 <= code < 500:
        return "4xx"
    if 500 <= code < 600:
        return "5xx"
    return "other"


# -----------------------------------------------------------------------------
# Exposición del endpoint /metrics
# -----------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Genera el body y content-type para /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
