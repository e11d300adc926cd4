"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: alembic/env.py (entorno de migraciones de tenant-guard)

Responsibilities:
  - Ejecutar las migraciones del esquema de autorización y auditoría.
  - Tomar la URL desde Settings (misma fuente que el pool de la app).

Collaborators:
  - tenant_guard.crosscutting.config.get_settings
  - SQLAlchemy (create_engine, solo para Alembic)

Policy:
  - Migraciones escritas a mano; sin metadata de ORM ni autogenerate.
============================================================
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from tenant_guard.crosscutting.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_DRIVER_PREFIXES = ("postgresql://", "postgres://")


def migration_url() -> str:
    """DATABASE_URL de la app con el dialecto psycopg 3 para SQLAlchemy."""
    url = get_settings().database_url
    for prefix in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def run_offline() -> None:
    # R: genera SQL sin conectarse (alembic upgrade --sql).
    context.configure(
        url=migration_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(migration_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=None)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
