"""
db/repositories/staging_repository.py

Read-only access to the staging store.  Staging rows are produced by the
connector layer and are never modified here.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.organization import Connector
from db.models.staging_row import StagingRow


class StagingRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_rows(self, *, connector_id: uuid.UUID, source_table: str) -> list[StagingRow]:
        """
        All staging rows of one connector table, oldest first.
        """
        stmt = (
            select(StagingRow)
            .where(
                StagingRow.connector_id == connector_id,
                StagingRow.source_table == source_table,
            )
            .order_by(StagingRow.ingested_at, StagingRow.id)
        )
        return list(self._session.scalars(stmt).all())

    def count_for_organization(self, organization_id: uuid.UUID) -> int:
        """
        Number of staging rows reachable through the organization's connectors.
        """
        stmt = (
            select(func.count(StagingRow.id))
            .join(Connector, Connector.id == StagingRow.connector_id)
            .where(Connector.organization_id == organization_id)
        )
        return int(self._session.scalar(stmt) or 0)
