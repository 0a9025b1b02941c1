"""
db/repositories/lineage_repository.py

Persistence layer for aggregated lineage edges.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.lineage_edge import LINEAGE_UPSERT_CONSTRAINT, LineageEdge

_DEFAULT_BATCH_SIZE = 500


class LineageRepository:
    """
    Edges are keyed on ``(organization_id, from_ref, to_ref, relation_type)``.
    Re-recording an edge replaces its row count, periods and metadata with
    those of the latest run.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_edges(
        self,
        edges: Sequence[dict[str, Any]],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Each edge dict carries ``organization_id``, ``from_ref``, ``to_ref``,
        ``relation_type``, ``row_count``, ``periods`` and ``metadata``.
        """
        if not edges:
            return 0

        size = max(1, batch_size)
        written = 0
        for start in range(0, len(edges), size):
            chunk = edges[start : start + size]
            payloads = [
                {
                    "id": uuid.uuid4(),
                    "organization_id": e["organization_id"],
                    "from_ref": e["from_ref"],
                    "to_ref": e["to_ref"],
                    "relation_type": e["relation_type"],
                    "row_count": e["row_count"],
                    "periods": list(e["periods"]),
                    "metadata_json": e.get("metadata"),
                }
                for e in chunk
            ]
            stmt = insert(LineageEdge).values(payloads)
            stmt = stmt.on_conflict_do_update(
                constraint=LINEAGE_UPSERT_CONSTRAINT,
                set_={
                    "row_count": stmt.excluded.row_count,
                    "periods": stmt.excluded.periods,
                    "metadata_json": stmt.excluded.metadata_json,
                    "recorded_at": func.now(),
                },
            ).returning(LineageEdge.id)
            written += len(self._session.scalars(stmt).all())
        return written

    def list_edges(
        self,
        organization_id: uuid.UUID,
        *,
        metric_code: str | None = None,
    ) -> list[LineageEdge]:
        stmt = (
            select(LineageEdge)
            .where(LineageEdge.organization_id == organization_id)
            .order_by(LineageEdge.to_ref, LineageEdge.from_ref, LineageEdge.relation_type)
        )
        if metric_code is not None:
            stmt = stmt.where(LineageEdge.to_ref == metric_code)
        return list(self._session.scalars(stmt).all())
