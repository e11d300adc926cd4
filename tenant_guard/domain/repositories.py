"""
CRC — domain/repositories.py

Name
- Lookup & Sink Interfaces (Protocols)

Responsibilities
- Define the narrow storage contracts the authorization pipeline depends on.
- Keep identity/audit logic independent from PostgreSQL or in-memory stores.
- Enable straightforward unit testing (fakes, mocks, in-memory repositories).

Collaborators
- identity.principal: Principal
- domain.audit: AuditRecord, AuditQueryFilters, AuditSummary
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Every method is one storage round-trip.
- Lookups return plain values; "not found" is None/False, never an exception.
  Storage failures raise DatabaseError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence
from uuid import UUID

from .audit import AuditQueryFilters, AuditRecord, AuditSummary

if TYPE_CHECKING:
    from ..identity.principal import Principal


class UserRoleLookup(Protocol):
    """R: Active user + role lookup used by the identity resolver."""

    def find_active_user_with_role(self, user_id: UUID) -> Principal | None:
        """R: Return the principal for an ACTIVE user, or None (missing/inactive)."""
        ...


class PermissionLookup(Protocol):
    """R: Role -> permission grants (exact names)."""

    def has_grant(self, role_id: UUID, permission: str) -> bool:
        """R: True iff the role holds exactly this permission name."""
        ...

    def has_any_grant(self, role_id: UUID, permissions: Sequence[str]) -> bool:
        """R: True iff the role holds at least one of the names."""
        ...


class FeatureFlagLookup(Protocol):
    """R: Per-tenant module flags. Absence == disabled."""

    def is_enabled(self, tenant_id: UUID, module_name: str) -> bool: ...


class AuditSink(Protocol):
    """R: Append-only audit writer."""

    def append(self, record: AuditRecord) -> None:
        """R: Persist one record whole. Raises DatabaseError on failure."""
        ...


class AuditQueryRepository(Protocol):
    """R: Audit trail reads."""

    def query(self, filters: AuditQueryFilters) -> list[AuditRecord]:
        """R: Newest first, never more than filters.limit rows."""
        ...

    def summarize(self, since_days: int) -> AuditSummary:
        """R: Totals by derived level over the window, all tenants."""
        ...
