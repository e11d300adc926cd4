"""
Tenant Guard: pipeline de autorización multi-tenant con audit trail.

Entrypoint ASGI: tenant_guard.main:app
"""

__version__ = "0.1.0"
