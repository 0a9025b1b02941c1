"""
db/models/kpi_result.py

Persisted canonical metric values, written by the mapping engine and the
KPI formula evaluator.  One row per organization, metric code and period.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Double, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

KPI_RESULT_UPSERT_CONSTRAINT = "uq_esg_kpi_results_org_metric_period"


class ESGKPIResult(Base):
    """
    Stores one metric value for one reporting period.

    The unique constraint on ``(organization_id, metric_code, period)``
    drives upsert semantics: re-running mapping or evaluation for the same
    key updates the existing row instead of inserting a duplicate.

    ``lineage`` records what produced the value, either the source field::

        {"profile_id": "...", "source_table": "energy_usage", "source_column": "kwh"}

    or the rule::

        {"rule_id": "...", "formula": {"type": "sum", ...}, "evaluated_at": "..."}
    """

    __tablename__ = "esg_kpi_results"

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
    period: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Reporting period key; 'unknown' when the source row had none",
    )
    value: Mapped[float] = mapped_column(Double, nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    lineage: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    quality_score: Mapped[float | None] = mapped_column(Double, nullable=True)
    source_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Mapping profile that produced the value, when mapped directly",
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "metric_code",
            "period",
            name=KPI_RESULT_UPSERT_CONSTRAINT,
        ),
        Index("ix_esg_kpi_results_organization_id", "organization_id"),
        Index("ix_esg_kpi_results_org_metric", "organization_id", "metric_code"),
    )
