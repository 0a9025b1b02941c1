"""
db/models/mapping_profile.py

Mapping profiles bind connector tables and columns to canonical ESG metric codes.
Profiles are produced by the mapping-suggestion step and are read-only here.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class MappingProfile(Base, TimestampMixin):
    __tablename__ = "mapping_profiles"

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
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Human-readable profile name",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="draft",
    )

    __table_args__ = (
        Index("ix_mapping_profiles_organization_id", "organization_id"),
    )


class MappingTable(Base):
    """
    Binds a source table of a profile to the connector that delivers it.
    """

    __tablename__ = "mapping_tables"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("mapping_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    connector_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("connectors.id", ondelete="CASCADE"),
        nullable=False,
    )
    source_table: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("profile_id", "source_table", name="uq_mapping_tables_profile_table"),
    )


class MappingField(Base):
    """
    Projects one source column onto a canonical metric code.

    ``transform`` is a tagged variant::

        {"type": "identity"}
        {"type": "convert_unit", "factor": 0.001}
        {"type": "sum"}
    """

    __tablename__ = "mapping_fields"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("mapping_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    source_table: Mapped[str] = mapped_column(String(255), nullable=False)
    source_column: Mapped[str] = mapped_column(String(255), nullable=False)
    target_metric_code: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Canonical metric code, e.g. E1-1.scope1",
    )
    transform: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_mapping_fields_profile_id", "profile_id"),
        Index("ix_mapping_fields_profile_active", "profile_id", "is_active"),
    )
