"""
db/models/lineage_edge.py

Directed provenance edges from source fields to metric codes.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

LINEAGE_UPSERT_CONSTRAINT = "uq_data_lineage_edges_org_from_to_relation"


class LineageEdge(Base):
    """
    One edge per ``(from_ref, to_ref, relation_type)`` and organization.

    ``from_ref`` is ``"table.column"``, ``to_ref`` a metric code.  Instead of
    one edge per consumed staging row, the edge carries the number of rows
    and the periods that contributed during the latest run.
    """

    __tablename__ = "data_lineage_edges"

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
    from_ref: Mapped[str] = mapped_column(String(512), nullable=False)
    to_ref: Mapped[str] = mapped_column(String(120), nullable=False)
    relation_type: Mapped[str] = mapped_column(String(64), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    periods: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "from_ref",
            "to_ref",
            "relation_type",
            name=LINEAGE_UPSERT_CONSTRAINT,
        ),
        Index("ix_data_lineage_edges_org_to_ref", "organization_id", "to_ref"),
    )
