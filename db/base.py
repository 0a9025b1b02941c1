"""
db/base.py

Declarative base for the ESG pipeline tables.

Author-managed tables (organizations, connectors, mapping profiles, KPI
rules) carry ``created_at``/``updated_at`` through :class:`TimestampMixin`.
Pipeline output tables stamp their own columns (``computed_at``,
``recorded_at``, ``validated_at``, ``occurred_at``).
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=utc_now,
    )
