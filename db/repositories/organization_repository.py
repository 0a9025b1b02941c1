"""
db/repositories/organization_repository.py

Read access to tenant organizations.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.organization import Organization


class OrganizationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, organization_id: uuid.UUID) -> Organization | None:
        return self._session.get(Organization, organization_id)

    def list_active_ids(self) -> list[uuid.UUID]:
        stmt = (
            select(Organization.id)
            .where(Organization.is_active.is_(True))
            .order_by(Organization.id)
        )
        return list(self._session.scalars(stmt).all())
