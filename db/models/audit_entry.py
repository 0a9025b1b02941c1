"""
db/models/audit_entry.py

Hash-chained audit trail of pipeline steps, one chain per organization.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import CHAR, DateTime, ForeignKey, Index, String, event
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.errors import AuditImmutabilityError
from db.base import Base


class AuditEntry(Base):
    """
    One recorded pipeline step.

    For chronologically adjacent entries of the same organization,
    ``later.prev_hash == earlier.output_hash``.  The first entry links to
    the genesis hash (64 zeros); entries written before the chain was
    enforced may carry ``NULL`` instead.
    """

    __tablename__ = "esg_ingestion_audit"

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
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    input_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    output_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(CHAR(64), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    __table_args__ = (
        Index("ix_esg_ingestion_audit_org_occurred", "organization_id", "occurred_at"),
    )


@event.listens_for(AuditEntry, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise AuditImmutabilityError(f"Audit entry {target.id} is immutable and cannot be updated.")


@event.listens_for(AuditEntry, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise AuditImmutabilityError(f"Audit entry {target.id} is immutable and cannot be deleted.")
