"""
db/repositories/kpi_rule_repository.py

Read access to declarative KPI rules.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.kpi_rule import KPIRule


class KPIRuleRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active(self, organization_id: uuid.UUID) -> list[KPIRule]:
        """Active rules of one organization ordered by metric code."""
        stmt = (
            select(KPIRule)
            .where(
                KPIRule.organization_id == organization_id,
                KPIRule.active.is_(True),
            )
            .order_by(KPIRule.metric_code)
        )
        return list(self._session.scalars(stmt).all())
