"""
Name: Database Pool Tests

Responsibilities:
  - Test pool lifecycle (init, get, close, reset)
  - Test the instrumented pool facade (healthcheck, timing, error wrapping)
  - Offline unit tests (no real DB)

Notes:
  - Uses mocking for ConnectionPool
"""

from unittest.mock import MagicMock, patch

import psycopg
import pytest


@pytest.mark.unit
class TestPoolLifecycle:
    """Test pool initialization and cleanup."""

    def test_init_pool_wraps_connection_pool(self):
        from tenant_guard.infrastructure.db.instrumentation import (
            InstrumentedConnectionPool,
        )
        from tenant_guard.infrastructure.db.pool import init_pool, reset_pool

        reset_pool()

        with patch("tenant_guard.infrastructure.db.pool.ConnectionPool") as MockPool:
            result = init_pool("postgresql://test", min_size=2, max_size=10)

            MockPool.assert_called_once()
            assert MockPool.call_args.kwargs["min_size"] == 2
            assert MockPool.call_args.kwargs["max_size"] == 10
            assert isinstance(result, InstrumentedConnectionPool)

        reset_pool()

    def test_init_pool_twice_raises_error(self):
        from tenant_guard.infrastructure.db import PoolAlreadyInitializedError
        from tenant_guard.infrastructure.db.pool import init_pool, reset_pool

        reset_pool()

        with patch("tenant_guard.infrastructure.db.pool.ConnectionPool"):
            init_pool("postgresql://test", min_size=2, max_size=10)

            with pytest.raises(PoolAlreadyInitializedError):
                init_pool("postgresql://test", min_size=2, max_size=10)

        reset_pool()

    def test_get_pool_without_init_raises_error(self):
        from tenant_guard.infrastructure.db import PoolNotInitializedError
        from tenant_guard.infrastructure.db.pool import get_pool, reset_pool

        reset_pool()

        with pytest.raises(PoolNotInitializedError):
            get_pool()

    def test_close_pool_clears_singleton(self):
        from tenant_guard.infrastructure.db import PoolNotInitializedError
        from tenant_guard.infrastructure.db.pool import (
            close_pool,
            get_pool,
            init_pool,
            reset_pool,
        )

        reset_pool()

        with patch("tenant_guard.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool

            init_pool("postgresql://test", min_size=2, max_size=10)
            close_pool()

            mock_pool.close.assert_called_once()

            with pytest.raises(PoolNotInitializedError):
                get_pool()

        # idempotente
        close_pool()

    def test_repository_falls_back_to_global_pool(self):
        from tenant_guard.infrastructure.db.pool import get_pool, init_pool, reset_pool
        from tenant_guard.infrastructure.repositories.postgres import (
            PostgresPermissionRepository,
        )

        reset_pool()

        with patch("tenant_guard.infrastructure.db.pool.ConnectionPool"):
            init_pool("postgresql://test", min_size=2, max_size=10)

            repo = PostgresPermissionRepository()

            assert repo._get_pool() is get_pool()

        reset_pool()


@pytest.mark.unit
class TestInstrumentedConnectionPool:
    def _pool(self, **kwargs):
        from tenant_guard.infrastructure.db.instrumentation import (
            InstrumentedConnectionPool,
        )

        inner = MagicMock()
        conn = inner.connection.return_value.__enter__.return_value
        return InstrumentedConnectionPool(inner, **kwargs), inner, conn

    def test_healthcheck_runs_select_1_on_acquire(self):
        pool, _, conn = self._pool(healthcheck=True)

        with pool.connection():
            pass

        conn.execute.assert_called_once_with("SELECT 1")

    def test_healthcheck_disabled(self):
        pool, _, conn = self._pool(healthcheck=False)

        with pool.connection() as wrapped:
            wrapped.execute("SELECT now()")

        conn.execute.assert_called_once_with("SELECT now()")

    def test_failed_healthcheck_raises_connection_error(self):
        from tenant_guard.infrastructure.db import DatabaseConnectionError

        pool, inner, conn = self._pool(healthcheck=True)
        conn.execute.side_effect = psycopg.OperationalError("server closed")

        with pytest.raises(DatabaseConnectionError):
            with pool.connection():
                pass

        inner.connection.return_value.__exit__.assert_called_once()

    def test_slow_query_is_logged(self):
        pool, _, _ = self._pool(healthcheck=False, slow_query_seconds=0.0)

        with patch("tenant_guard.infrastructure.db.instrumentation.logger") as log:
            with pool.connection() as conn:
                conn.execute("SELECT * FROM audit_logs")

        log.warning.assert_called_once()
        assert log.warning.call_args.kwargs["extra"]["kind"] == "SELECT"

    def test_other_attributes_are_delegated(self):
        pool, inner, _ = self._pool()

        pool.close()

        inner.close.assert_called_once()
