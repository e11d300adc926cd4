"""
===============================================================================
TARJETA CRC — router.py (Router /v1)
===============================================================================

Responsabilidades:
  - Juntar session, tenants y admin bajo un único APIRouter.
  - Documentar en OpenAPI las respuestas problem+json compartidas.

Colaboradores:
  - api/main.py (lo monta con prefix="/v1")
  - routers.*
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from ....crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from .routers import admin_router, session_router, tenants_router


def build_router() -> APIRouter:
    v1 = APIRouter(responses=OPENAPI_ERROR_RESPONSES)
    for child in (session_router, tenants_router, admin_router):
        v1.include_router(child)
    return v1


router = build_router()

__all__ = ["router", "build_router"]
