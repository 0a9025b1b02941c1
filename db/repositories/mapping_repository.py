"""
db/repositories/mapping_repository.py

Read access to mapping profiles, their table bindings and field mappings.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.mapping_profile import MappingField, MappingProfile, MappingTable


class MappingRepository:
    """
    Profile lookups are always scoped to the caller's organization, so a
    profile id from another tenant behaves as if it did not exist.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_profile(
        self,
        *,
        organization_id: uuid.UUID,
        profile_id: uuid.UUID,
    ) -> MappingProfile | None:
        stmt = select(MappingProfile).where(
            MappingProfile.id == profile_id,
            MappingProfile.organization_id == organization_id,
        )
        return self._session.scalars(stmt).first()

    def get_latest_profile(self, organization_id: uuid.UUID) -> MappingProfile | None:
        stmt = (
            select(MappingProfile)
            .where(MappingProfile.organization_id == organization_id)
            .order_by(MappingProfile.created_at.desc(), MappingProfile.id)
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def list_tables(self, profile_id: uuid.UUID) -> list[MappingTable]:
        stmt = (
            select(MappingTable)
            .where(MappingTable.profile_id == profile_id)
            .order_by(MappingTable.source_table)
        )
        return list(self._session.scalars(stmt).all())

    def list_active_fields(self, profile_id: uuid.UUID) -> list[MappingField]:
        """
        Active field mappings ordered by source table, then column.
        """
        stmt = (
            select(MappingField)
            .where(
                MappingField.profile_id == profile_id,
                MappingField.is_active.is_(True),
            )
            .order_by(
                MappingField.source_table,
                MappingField.source_column,
                MappingField.target_metric_code,
            )
        )
        return list(self._session.scalars(stmt).all())
