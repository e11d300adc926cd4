"""
===============================================================================
SUBSISTEMA: Infraestructura / Queue
===============================================================================

Dispatchers de auditoría (handoff request -> escritura en el sink).
===============================================================================
"""

from .audit_dispatcher import AuditStats, InlineAuditDispatcher, QueueAuditDispatcher

__all__ = ["AuditStats", "InlineAuditDispatcher", "QueueAuditDispatcher"]
