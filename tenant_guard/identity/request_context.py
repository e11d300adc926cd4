"""
===============================================================================
TARJETA CRC — identity/request_context.py
===============================================================================

Módulo:
    Contexto explícito de autorización (por request)

Responsabilidades:
    - PipelineState: estados por los que pasa un request.
    - Provenance: IP / user agent / request_id del llamador.
    - RequestContext: inmutable; cada etapa devuelve una copia avanzada.
    - ctx.audit(...): atajo al AuditRecorder con identidad e IP ya cargadas.

Colaboradores:
    - identity/pipeline.py (crea y avanza el contexto)
    - identity/tenant_isolation.py (bind del tenant)
    - tenant_guard/audit.py (AuditRecorder)
    - routers HTTP (lo reciben por dependencia)

Notas:
    - El contexto se pasa explícitamente; nada de mutar el request.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from .errors import Unauthenticated
from .principal import Principal

if TYPE_CHECKING:
    from ..audit import AuditRecorder


class PipelineState(str, Enum):
    """
    UNAUTHENTICATED -> IDENTIFIED -> TENANT_BOUND -> AUTHORIZED -> COMPLETED.
    REJECTED es terminal y alcanzable desde cualquier estado previo a AUTHORIZED.
    """

    UNAUTHENTICATED = "unauthenticated"
    IDENTIFIED = "identified"
    TENANT_BOUND = "tenant_bound"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Provenance:
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class RequestContext:
    state: PipelineState = PipelineState.UNAUTHENTICATED
    principal: Principal | None = None
    tenant_id: UUID | None = None
    provenance: Provenance = field(default_factory=Provenance)
    recorder: AuditRecorder | None = field(default=None, repr=False, compare=False)

    def advance(self, state: PipelineState, **changes: Any) -> RequestContext:
        return replace(self, state=state, **changes)

    def require_principal(self) -> Principal:
        if self.principal is None:
            raise Unauthenticated("Contexto sin principal resuelto")
        return self.principal

    def audit(
        self,
        action: str,
        resource: str,
        *,
        resource_id: UUID | str | None = None,
        details: dict[str, Any] | None = None,
        tenant_id: UUID | None = None,
    ) -> bool:
        """
        Registra una acción del principal actual (best-effort).

        tenant_id solo se pasa para acciones cross-tenant de plataforma;
        por defecto se usa el tenant del principal.
        """
        if self.recorder is None or self.principal is None:
            return False
        return self.recorder.record(
            action,
            resource,
            principal=self.principal,
            resource_id=resource_id,
            details=details,
            ip_address=self.provenance.ip_address,
            user_agent=self.provenance.user_agent,
            tenant_id=tenant_id,
        )
