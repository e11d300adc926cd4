"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Errores del pool. Son DatabaseError: los handlers HTTP responden 503 y el
recorder de auditoría los absorbe como cualquier otra falla del sink.
===============================================================================
"""

from ...crosscutting.exceptions import DatabaseError


class DatabasePoolError(DatabaseError):
    error_code: str = "DATABASE_POOL_ERROR"


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() llamado dos veces en el mismo proceso."""


class PoolNotInitializedError(DatabasePoolError):
    """Un repositorio pidió el pool antes del lifespan."""


class DatabaseConnectionError(DatabasePoolError):
    """No se pudo tomar una conexión, o el healthcheck falló."""
