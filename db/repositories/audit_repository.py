"""
db/repositories/audit_repository.py

Append-only access to the per-organization audit hash chain.

There is intentionally no update or delete method.  The caller controls
commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.audit_entry import AuditEntry


class AuditRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def lock_chain(self, organization_id: uuid.UUID) -> None:
        """
        Serialize appends for one organization until the transaction ends.
        """
        self._session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(str(organization_id))))
        )

    def get_latest(self, organization_id: uuid.UUID) -> AuditEntry | None:
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.organization_id == organization_id)
            .order_by(AuditEntry.occurred_at.desc(), AuditEntry.id.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def get_predecessor(self, organization_id: uuid.UUID, before: datetime) -> AuditEntry | None:
        """Latest entry strictly before *before*."""
        stmt = (
            select(AuditEntry)
            .where(
                AuditEntry.organization_id == organization_id,
                AuditEntry.occurred_at < before,
            )
            .order_by(AuditEntry.occurred_at.desc(), AuditEntry.id.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def list_entries(
        self,
        organization_id: uuid.UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AuditEntry]:
        """Entries in ``[start, end]`` ordered by ``occurred_at`` ascending."""
        stmt = select(AuditEntry).where(AuditEntry.organization_id == organization_id)
        if start is not None:
            stmt = stmt.where(AuditEntry.occurred_at >= start)
        if end is not None:
            stmt = stmt.where(AuditEntry.occurred_at <= end)
        stmt = stmt.order_by(AuditEntry.occurred_at, AuditEntry.id)
        return list(self._session.scalars(stmt).all())

    def add(self, entry: AuditEntry) -> AuditEntry:
        self._session.add(entry)
        self._session.flush()
        return entry
