"""
db/repositories/kpi_result_repository.py

Persistence layer for ESGKPIResult records.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.kpi_result import KPI_RESULT_UPSERT_CONSTRAINT, ESGKPIResult

_DEFAULT_BATCH_SIZE = 500


class KPIResultRepository:
    """
    Repository for writing and querying ESGKPIResult rows.

    Upsert semantics: inserting a row whose ``(organization_id, metric_code,
    period)`` already exists replaces ``value``, ``unit``, ``lineage``,
    ``quality_score`` and ``source_profile_id`` and refreshes
    ``computed_at``, rather than raising a duplicate-key error.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def bulk_upsert(
        self,
        rows: Sequence[dict[str, Any]],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Upsert multiple KPI result rows in batches.

        Each element of ``rows`` must contain the keys ``organization_id``,
        ``metric_code``, ``period``, ``value``, ``unit``, ``lineage`` and
        ``quality_score``; ``source_profile_id`` is optional.

        Rows with a duplicate ``(organization_id, metric_code, period)``
        within the same call are deduplicated in Python before hitting the
        database; the last occurrence wins.

        Returns
        -------
        int
            Total number of rows written (inserted + updated).
        """
        if not rows:
            return 0

        deduped = _deduplicate(rows)
        size = max(1, batch_size)
        written = 0
        computed_at = utc_now()

        for start in range(0, len(deduped), size):
            chunk = deduped[start : start + size]
            payloads = [
                {
                    "id": uuid.uuid4(),
                    "organization_id": r["organization_id"],
                    "metric_code": r["metric_code"],
                    "period": r["period"],
                    "value": r["value"],
                    "unit": r.get("unit"),
                    "lineage": r.get("lineage"),
                    "quality_score": r.get("quality_score"),
                    "source_profile_id": r.get("source_profile_id"),
                    "computed_at": computed_at,
                }
                for r in chunk
            ]
            stmt = insert(ESGKPIResult).values(payloads)
            stmt = stmt.on_conflict_do_update(
                constraint=KPI_RESULT_UPSERT_CONSTRAINT,
                set_={
                    "value": stmt.excluded.value,
                    "unit": stmt.excluded.unit,
                    "lineage": stmt.excluded.lineage,
                    "quality_score": stmt.excluded.quality_score,
                    "source_profile_id": stmt.excluded.source_profile_id,
                    "computed_at": stmt.excluded.computed_at,
                },
            ).returning(ESGKPIResult.id)
            written += len(self._session.scalars(stmt).all())

        return written

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_results(
        self,
        organization_id: uuid.UUID,
        *,
        metric_code: str | None = None,
    ) -> list[ESGKPIResult]:
        """
        Return the organization's KPI results ordered by metric code, then period.
        """
        stmt = (
            select(ESGKPIResult)
            .where(ESGKPIResult.organization_id == organization_id)
            .order_by(ESGKPIResult.metric_code, ESGKPIResult.period)
        )
        if metric_code is not None:
            stmt = stmt.where(ESGKPIResult.metric_code == metric_code)
        return list(self._session.scalars(stmt).all())


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _deduplicate(rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Last-write-wins deduplication keyed on (organization_id, metric_code, period)."""
    seen: dict[tuple[Any, str, str], dict[str, Any]] = {}
    for row in rows:
        key = (row["organization_id"], row["metric_code"], row["period"])
        seen[key] = row
    return list(seen.values())