"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio

Responsabilidades:
    - Re-exportar registros de auditoría y puertos de lookup/persistencia.

Reglas:
    - No importar infraestructura aquí.
===============================================================================
"""

from .audit import AuditQueryFilters, AuditRecord
from .repositories import (
    AuditQueryRepository,
    AuditSink,
    FeatureFlagLookup,
    PermissionLookup,
    UserRoleLookup,
)

__all__ = [
    "AuditQueryFilters",
    "AuditRecord",
    "AuditQueryRepository",
    "AuditSink",
    "FeatureFlagLookup",
    "PermissionLookup",
    "UserRoleLookup",
]
