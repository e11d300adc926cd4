"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Clases:
  - TimedConnection: conexión que mide cada execute().
  - InstrumentedConnectionPool: pool que entrega TimedConnection.

Responsabilidades:
  - Histograma de duración por tipo de statement (lookups de permisos,
    flags, usuarios e inserts de auditoría).
  - Warning de query lenta con el tipo de statement, nunca el SQL ni params.
  - SELECT 1 opcional al tomar una conexión: una conexión rota se reporta
    como DatabaseConnectionError antes de correr el lookup.

Colaboradores:
  - crosscutting.metrics.observe_db_query_duration
  - psycopg_pool.ConnectionPool
===============================================================================
"""

from __future__ import annotations

import time
from contextlib import ExitStack, contextmanager
from typing import Any, Iterator

import psycopg

from ...crosscutting.logger import logger
from ...crosscutting.metrics import observe_db_query_duration
from .errors import DatabaseConnectionError


def statement_kind(sql: Any) -> str:
    """SELECT / INSERT / SET ... (primer token, baja cardinalidad)."""
    head = str(sql).lstrip().split(None, 1)
    return head[0].upper() if head else "UNKNOWN"


class TimedConnection:
    def __init__(self, conn, *, slow_query_seconds: float) -> None:
        self._conn = conn
        self._slow_query_seconds = slow_query_seconds

    def execute(self, sql, *args, **kwargs):
        started = time.perf_counter()
        try:
            return self._conn.execute(sql, *args, **kwargs)
        finally:
            self._observe(statement_kind(sql), time.perf_counter() - started)

    def _observe(self, kind: str, seconds: float) -> None:
        observe_db_query_duration(kind, seconds)
        if seconds < self._slow_query_seconds:
            return
        logger.warning(
            "DB query lenta",
            extra={"kind": kind, "seconds": round(seconds, 4)},
        )

    def __getattr__(self, name: str):
        # commit(), cursor(), transaction() ... van directo a psycopg.
        return getattr(self._conn, name)


class InstrumentedConnectionPool:
    """
    Envuelve el ConnectionPool real. Los repositorios no cambian:
    `with pool.connection() as conn: conn.execute(...)`.
    """

    def __init__(
        self,
        inner_pool,
        *,
        slow_query_seconds: float = 0.25,
        healthcheck: bool = True,
    ) -> None:
        self._inner = inner_pool
        self._slow_query_seconds = slow_query_seconds
        self._healthcheck = healthcheck

    @contextmanager
    def connection(self, *args, **kwargs) -> Iterator[TimedConnection]:
        with ExitStack() as stack:
            try:
                conn = stack.enter_context(self._inner.connection(*args, **kwargs))
            except psycopg.Error as exc:
                raise DatabaseConnectionError(
                    "No se pudo adquirir conexión DB.", original_error=exc
                ) from exc

            if self._healthcheck:
                self._check_alive(conn)

            yield TimedConnection(conn, slow_query_seconds=self._slow_query_seconds)

    @staticmethod
    def _check_alive(conn) -> None:
        try:
            conn.execute("SELECT 1")
        except psycopg.Error as exc:
            # R: al salir del ExitStack la conexión vuelve al pool con el error.
            raise DatabaseConnectionError(
                "Conexión DB inválida (healthcheck).", original_error=exc
            ) from exc

    def __getattr__(self, name: str):
        return getattr(self._inner, name)
