"""
db/models/staging_row.py

Raw rows ingested by connectors, before canonical mapping.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class StagingRow(Base):
    """
    One source record as delivered by a connector.

    Append-only and owned by the connector layer.  ``payload`` holds the
    source columns verbatim; ``period`` is the reporting period the row
    belongs to (``"2024-Q1"``, ``"2024-01-01"``...) when the connector knows it.
    """

    __tablename__ = "staging_rows"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    connector_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("connectors.id", ondelete="CASCADE"),
        nullable=False,
    )
    source_table: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Source columns as delivered by the connector",
    )
    period: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_staging_rows_connector_table", "connector_id", "source_table"),
    )
