"""
db/models/validation_result.py

Data-quality findings produced by each validation run.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ValidationResultRecord(Base):
    """
    Append-only.  Each run writes its own rows under a shared ``run_id``;
    rows from previous runs are never deduplicated or overwritten.
    """

    __tablename__ = "esg_validation_results"

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
    run_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    check_type: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, comment="pass, warning, fail")
    severity: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="low, medium, high, critical",
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    affected_kpis: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    details: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    validated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_esg_validation_results_org_validated", "organization_id", "validated_at"),
        Index("ix_esg_validation_results_run_id", "run_id"),
    )
