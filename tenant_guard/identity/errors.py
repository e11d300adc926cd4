"""
===============================================================================
TARJETA CRC — identity/errors.py
===============================================================================

Módulo:
    Taxonomía de rechazos del pipeline de autorización

Responsabilidades:
    - Una clase por motivo de rechazo, con status HTTP y código estable.
    - Separar el mensaje interno (logs) del detalle público (cliente).
    - Guardar en qué estado del pipeline ocurrió el rechazo (y el contexto
      terminal REJECTED que completa el pipeline).

Colaboradores:
    - identity/resolver.py, tenant_isolation.py, permissions.py, features.py
    - identity/pipeline.py (completa `state` y `context`, loguea y cuenta)
    - api/exception_handlers.py (mapea a problem+json)

Notas:
    - InactiveOrUnknownPrincipal responde EXACTAMENTE igual que
      InvalidCredential: el cliente no puede distinguir "usuario inexistente"
      de "token inválido". `reason` sí los distingue en logs y métricas.
===============================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence
from uuid import UUID

from ..crosscutting.exceptions import TenantGuardError

if TYPE_CHECKING:
    from .request_context import PipelineState, RequestContext


class AccessDenied(TenantGuardError):
    """Base de todos los rechazos del pipeline."""

    status_code: int = 403
    error_code: str = "ACCESS_DENIED"
    public_detail: str = "Acceso denegado."

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        super().__init__(message or self.public_detail)
        if detail is not None:
            self.public_detail = detail
        # R: estado desde el que se rechazó; `context` es el mismo ya en REJECTED.
        self.state: PipelineState | None = None
        self.context: RequestContext | None = None

    @property
    def reason(self) -> str:
        """Etiqueta de baja cardinalidad para métricas."""
        return self.error_code


# ---------------------------------------------------------------------------
# 401
# ---------------------------------------------------------------------------
class Unauthenticated(AccessDenied):
    status_code = 401
    error_code = "UNAUTHENTICATED"
    public_detail = "Autenticación requerida."


class InvalidCredential(AccessDenied):
    status_code = 401
    error_code = "INVALID_CREDENTIAL"
    public_detail = "Token inválido."


class ExpiredCredential(AccessDenied):
    status_code = 401
    error_code = "EXPIRED_CREDENTIAL"
    public_detail = "Token expirado."


class InactiveOrUnknownPrincipal(InvalidCredential):
    """Usuario inexistente o inactivo. Para el cliente es un token inválido."""

    @property
    def reason(self) -> str:
        return "INACTIVE_OR_UNKNOWN_PRINCIPAL"


# ---------------------------------------------------------------------------
# 403
# ---------------------------------------------------------------------------
class NoTenantAssociation(AccessDenied):
    error_code = "NO_TENANT_ASSOCIATION"
    public_detail = "El usuario no está asociado a ningún tenant."


class ScopeMismatch(AccessDenied):
    error_code = "SCOPE_MISMATCH"

    def __init__(self, required: str, actual: str):
        self.required = required
        self.actual = actual
        detail = f"Alcance insuficiente. Requerido: {required}, actual: {actual}."
        super().__init__(detail, detail=detail)


class InsufficientPermission(AccessDenied):
    error_code = "INSUFFICIENT_PERMISSION"

    def __init__(self, permissions: str | Sequence[str]):
        if isinstance(permissions, str):
            permissions = (permissions,)
        self.permissions = tuple(permissions)
        if len(self.permissions) == 1:
            detail = f"Permiso insuficiente. Requerido: {self.permissions[0]}."
        else:
            detail = (
                "Permiso insuficiente. Requerido alguno de: "
                f"{', '.join(self.permissions)}."
            )
        super().__init__(detail, detail=detail)


class ModuleNotEnabled(AccessDenied):
    error_code = "MODULE_NOT_ENABLED"

    def __init__(self, module_name: str):
        self.module_name = module_name
        detail = f"El módulo '{module_name}' no está habilitado para este tenant."
        super().__init__(detail, detail=detail)


class CrossTenantAccessDenied(AccessDenied):
    error_code = "CROSS_TENANT_ACCESS"
    public_detail = "Acceso denegado a recursos de otro tenant."

    def __init__(self, requested_tenant_id: UUID | str | None = None):
        self.requested_tenant_id = requested_tenant_id
        super().__init__(
            f"Acceso cross-tenant denegado (tenant solicitado: {requested_tenant_id})"
        )
