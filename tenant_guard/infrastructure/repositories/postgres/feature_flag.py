"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/feature_flag.py
============================================================
Class: PostgresFeatureFlagRepository

Responsibilities:
  - Leer tenant_features.is_enabled para (tenant_id, module_name).

Constraints / Notes:
  - Sin fila -> False (ausencia == deshabilitado).
============================================================
"""

from __future__ import annotations

from uuid import UUID

from ._base import PostgresRepository

_IS_ENABLED = """
    SELECT is_enabled
    FROM tenant_features
    WHERE tenant_id = %s AND module_name = %s
"""


class PostgresFeatureFlagRepository(PostgresRepository):
    """Implementa FeatureFlagLookup."""

    def is_enabled(self, tenant_id: UUID, module_name: str) -> bool:
        row = self._fetchone(
            query=_IS_ENABLED,
            params=[tenant_id, module_name],
            error_message="PostgresFeatureFlagRepository: Failed to read feature flag",
            extra={"tenant_id": str(tenant_id), "module_name": module_name},
        )
        return bool(row and row[0])
