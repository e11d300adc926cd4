"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/__init__.py
===============================================================================

Name:
    Routers Package (HTTP)

Responsibilities:
    - Re-exportar routers por contexto (session / admin / tenants).
===============================================================================
"""

from .admin import router as admin_router
from .session import router as session_router
from .tenants import router as tenants_router

__all__ = ["admin_router", "session_router", "tenants_router"]
