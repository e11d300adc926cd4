"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool de conexiones PostgreSQL del proceso

Responsabilidades:
  - Crear el pool una sola vez (lifespan) y entregarlo a los repositorios.
  - Preparar cada conexión nueva: statement_timeout y application_name.
  - Cerrar el pool al apagar (idempotente).

Colaboradores:
  - psycopg_pool.ConnectionPool
  - InstrumentedConnectionPool (lo que reciben los repositorios)
  - api/main.py: init_pool / close_pool
  - repositories/postgres/_base.py: get_pool como fallback

Errores:
  - PoolAlreadyInitializedError si se inicializa dos veces.
  - PoolNotInitializedError si un repositorio lo pide antes del lifespan.
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from psycopg_pool import ConnectionPool

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger
from .errors import PoolAlreadyInitializedError, PoolNotInitializedError
from .instrumentation import InstrumentedConnectionPool

APPLICATION_NAME = "tenant-guard"

_lock = threading.Lock()
_instance: Optional[InstrumentedConnectionPool] = None


def _prepare_session(conn) -> None:
    """Callback `configure` del pool: corre una vez por conexión física."""
    timeout_ms = int(get_settings().db_statement_timeout_ms)
    conn.execute(
        "SELECT set_config('application_name', %s, false)", (APPLICATION_NAME,)
    )
    if timeout_ms > 0:
        conn.execute(
            "SELECT set_config('statement_timeout', %s, false)", (f"{timeout_ms}ms",)
        )
    conn.commit()


def init_pool(database_url: str, min_size: int, max_size: int) -> InstrumentedConnectionPool:
    global _instance

    settings = get_settings()
    with _lock:
        if _instance is not None:
            raise PoolAlreadyInitializedError("El pool ya fue inicializado.")

        raw = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            configure=_prepare_session,
            name=APPLICATION_NAME,
            open=True,
        )
        _instance = InstrumentedConnectionPool(
            raw,
            slow_query_seconds=settings.db_slow_query_seconds,
            healthcheck=settings.db_healthcheck_on_acquire,
        )

    logger.info(
        "pool DB listo",
        extra={
            "min_size": min_size,
            "max_size": max_size,
            "statement_timeout_ms": settings.db_statement_timeout_ms,
        },
    )
    return _instance


def get_pool() -> InstrumentedConnectionPool:
    pool = _instance
    if pool is None:
        raise PoolNotInitializedError("Pool no inicializado. Llamar init_pool() primero.")
    return pool


def close_pool() -> None:
    global _instance

    with _lock:
        pool, _instance = _instance, None

    if pool is None:
        return
    logger.info("cerrando pool DB")
    pool.close()


def reset_pool() -> None:
    """Olvida el pool sin cerrarlo (solo tests)."""
    global _instance
    with _lock:
        _instance = None
