"""
db/models/kpi_rule.py

Author-managed KPI formulas, evaluated by the KPI formula evaluator.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class KPIRule(Base, TimestampMixin):
    """
    Declarative KPI definition.

    ``formula`` is a tagged variant::

        {"type": "field_sum", "field": "E1-1.scope1"}
        {"type": "sum", "fields": ["E1-1.scope1", "E1-1.scope2"]}
        {"type": "ratio", "numerator": "a", "denominator": "b"}
    """

    __tablename__ = "esg_kpi_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    metric_code: Mapped[str] = mapped_column(String(120), nullable=False)
    formula: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "metric_code", name="uq_esg_kpi_rules_org_metric"),
        Index("ix_esg_kpi_rules_org_active", "organization_id", "active"),
    )
