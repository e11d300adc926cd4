"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/_base.py
============================================================
Class: PostgresRepository

Responsibilities:
  - Resolver el pool: el inyectado (tests) o el global del lifespan.
  - Traducir cualquier falla del driver a DatabaseError, con log.

Collaborators:
  - infrastructure.db.pool.get_pool
  - crosscutting.exceptions.DatabaseError
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger


@contextmanager
def _wrapped(error_message: str, extra: dict[str, object]) -> Iterator[None]:
    try:
        yield
    except DatabaseError:
        raise
    except Exception as exc:
        logger.exception(error_message, extra={**extra, "error": str(exc)})
        raise DatabaseError(f"{error_message}: {exc}", original_error=exc) from exc


class PostgresRepository:
    def __init__(self, pool: Any | None = None):
        self._pool = pool

    def _get_pool(self) -> Any:
        if self._pool is None:
            from ...db.pool import get_pool

            return get_pool()
        return self._pool

    def _run(self, query: str, params: Iterable[object]) -> None:
        with self._get_pool().connection() as conn:
            conn.execute(query, tuple(params))

    def _fetchone(
        self, *, query: str, params: Iterable[object], error_message: str, extra: dict[str, object]
    ) -> tuple | None:
        with _wrapped(error_message, extra):
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchone()

    def _fetchall(
        self, *, query: str, params: Iterable[object], error_message: str, extra: dict[str, object]
    ) -> list[tuple]:
        with _wrapped(error_message, extra):
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()

    def _execute(
        self, *, query: str, params: Iterable[object], error_message: str, extra: dict[str, object]
    ) -> None:
        with _wrapped(error_message, extra):
            self._run(query, params)

    def ping(self) -> bool:
        with _wrapped(f"{type(self).__name__}: ping falló", {}):
            self._run("SELECT 1", ())
        return True
