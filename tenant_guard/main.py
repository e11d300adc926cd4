"""
Name: ASGI Entrypoint (tenant_guard.main)

Responsibilities:
  - Re-export the FastAPI app for ASGI servers and tooling
  - Keep this module side-effect free beyond importing tenant_guard.api.main

Notes/Constraints:
  - uvicorn tenant_guard.main:app
  - No configuration or IO should live here
"""

from tenant_guard.api.main import app

__all__ = ["app"]
