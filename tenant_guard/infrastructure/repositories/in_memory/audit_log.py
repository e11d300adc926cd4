"""
In-memory audit log (AuditSink + AuditQueryRepository).

For testing and local development. NOT FOR PRODUCTION.
Mirrors the PostgreSQL read semantics: time window, exact action/resource,
case-insensitive substring on email/search/keyword, derived level,
newest first, limit. summarize() counts the same window over all tenants.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, List
from uuid import UUID

from ....domain.audit import (
    AUTH_EVENT_ACTIONS,
    AuditQueryFilters,
    AuditRecord,
    AuditSummary,
    LogLevel,
    level_of,
)
from ....identity.principal import Principal


class InMemoryAuditLogRepository:
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._lock = Lock()
        self._records: List[AuditRecord] = []
        self._users: Dict[UUID, Principal] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def register_user(self, principal: Principal) -> None:
        """Datos para el "join" de lectura (email / nombre)."""
        with self._lock:
            self._users[principal.id] = principal

    def append(self, record: AuditRecord) -> None:
        stored = record if record.created_at else replace(record, created_at=self._clock())
        with self._lock:
            self._records.append(stored)

    def all(self) -> List[AuditRecord]:
        with self._lock:
            return list(self._records)

    def ping(self) -> bool:
        return True

    def query(self, filters: AuditQueryFilters) -> List[AuditRecord]:
        if filters.limit <= 0:
            return []

        since = self._clock() - timedelta(days=filters.since_days)
        with self._lock:
            rows = [self._joined(r) for r in self._records]

        results = [r for r in rows if r.created_at is not None and r.created_at >= since]

        if filters.tenant_id is not None:
            results = [r for r in results if r.tenant_id == filters.tenant_id]
        if filters.action:
            results = [r for r in results if r.action == filters.action]
        if filters.resource:
            results = [r for r in results if r.resource == filters.resource]
        if filters.user_id is not None:
            results = [r for r in results if r.actor_user_id == filters.user_id]
        if filters.user_email:
            needle = filters.user_email.lower()
            results = [r for r in results if needle in (r.user_email or "").lower()]
        if filters.search:
            needle = filters.search.lower()
            results = [
                r
                for r in results
                if any(
                    needle in (value or "").lower()
                    for value in (r.user_email, r.first_name, r.last_name)
                )
            ]

        if filters.keyword:
            needle = filters.keyword.lower()
            results = [
                r
                for r in results
                if any(
                    needle in (value or "").lower()
                    for value in (r.user_email, r.action, r.resource)
                )
            ]
        if filters.level is not None:
            results = [r for r in results if level_of(r.action) == filters.level]

        results.sort(key=lambda r: (r.created_at, str(r.id)), reverse=True)
        return results[: filters.limit]

    def summarize(self, since_days: int) -> AuditSummary:
        since = self._clock() - timedelta(days=since_days)
        with self._lock:
            actions = [
                r.action
                for r in self._records
                if r.created_at is not None and r.created_at >= since
            ]
        levels = [level_of(action) for action in actions]
        return AuditSummary(
            since_days=since_days,
            total=len(actions),
            successful=levels.count(LogLevel.SUCCESS),
            errors=levels.count(LogLevel.ERROR),
            auth_events=sum(1 for action in actions if action in AUTH_EVENT_ACTIONS),
        )

    def _joined(self, record: AuditRecord) -> AuditRecord:
        user = self._users.get(record.actor_user_id)
        if user is None:
            return record
        return replace(
            record,
            user_email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )
