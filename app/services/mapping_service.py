"""
app/services/mapping_service.py

Mapping run orchestrator.

Wires MappingRepository -> StagingRepository -> mapping engine ->
KPIResultRepository / LineageRepository -> AuditRecorder into one run.

Failure contract
----------------
- Profile missing or owned by another organization -> NotFoundError
- Profile without active field mappings             -> BadRequestError
- Field whose source table has no connector binding  -> skipped, reported
- Field with an unknown or malformed transform       -> skipped, reported
- Non-numeric staging value                          -> row skipped, counted
- Persistence failure                                -> propagates; caller rolls back
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from app.config import PipelineSettings, get_pipeline_settings
from app.errors import BadRequestError, NotFoundError
from app.services.audit_service import AuditRecorder
from db.repositories.kpi_result_repository import KPIResultRepository
from db.repositories.lineage_repository import LineageRepository
from db.repositories.mapping_repository import MappingRepository
from db.repositories.staging_repository import StagingRepository
from mapping.engine import (
    FIELD_MAPPING_RELATION,
    FieldProjection,
    Projection,
    StagingValue,
    accumulate_field,
)
from mapping.transforms import TransformError, describe_transform, parse_transform

logger = logging.getLogger(__name__)

MAPPING_EVENT = "run_mapping"
UNKNOWN_UNIT = "unknown"


@dataclass(frozen=True)
class MappingRunResult:
    profile_id: uuid.UUID
    metrics_processed: int
    metric_codes: list[str]
    rows_consumed: int
    rows_skipped: int
    lineage_edges: int
    skipped_fields: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "profile_id": str(self.profile_id),
            "metrics_processed": self.metrics_processed,
            "metric_codes": list(self.metric_codes),
            "rows_consumed": self.rows_consumed,
            "rows_skipped": self.rows_skipped,
            "lineage_edges": self.lineage_edges,
            "skipped_fields": list(self.skipped_fields),
        }


class MappingService:
    """
    Projects an organization's staging rows onto canonical metric codes
    using one mapping profile.
    """

    def __init__(
        self,
        *,
        mapping_repository: MappingRepository,
        staging_repository: StagingRepository,
        result_repository: KPIResultRepository,
        lineage_repository: LineageRepository,
        recorder: AuditRecorder,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._mappings = mapping_repository
        self._staging = staging_repository
        self._results = result_repository
        self._lineage = lineage_repository
        self._recorder = recorder
        self._settings = settings or get_pipeline_settings()

    @classmethod
    def from_session(
        cls,
        session: Session,
        settings: PipelineSettings | None = None,
    ) -> "MappingService":
        return cls(
            mapping_repository=MappingRepository(session),
            staging_repository=StagingRepository(session),
            result_repository=KPIResultRepository(session),
            lineage_repository=LineageRepository(session),
            recorder=AuditRecorder.from_session(session),
            settings=settings,
        )

    def run(self, organization_id: uuid.UUID, profile_id: uuid.UUID) -> MappingRunResult:
        profile = self._mappings.get_profile(
            organization_id=organization_id,
            profile_id=profile_id,
        )
        if profile is None:
            raise NotFoundError(f"Mapping profile {profile_id} not found")

        fields = self._mappings.list_active_fields(profile.id)
        if not fields:
            raise BadRequestError("No field mappings configured")

        bindings = {table.source_table: table.connector_id for table in self._mappings.list_tables(profile.id)}

        projection = Projection()
        skipped_fields: list[dict[str, Any]] = []
        row_cache: dict[tuple[uuid.UUID, str], list[StagingValue]] = {}

        for mapping_field in fields:
            source_ref = f"{mapping_field.source_table}.{mapping_field.source_column}"
            connector_id = bindings.get(mapping_field.source_table)
            if connector_id is None:
                logger.warning(
                    "Profile %s: no connector bound to table %s; skipping %s -> %s",
                    profile.id,
                    mapping_field.source_table,
                    source_ref,
                    mapping_field.target_metric_code,
                )
                skipped_fields.append(
                    _skipped(mapping_field, source_ref, "No connector bound to source table")
                )
                continue

            try:
                transform = parse_transform(mapping_field.transform)
            except TransformError as exc:
                logger.error(
                    "Profile %s: invalid transform on %s -> %s: %s",
                    profile.id,
                    source_ref,
                    mapping_field.target_metric_code,
                    exc,
                )
                skipped_fields.append(_skipped(mapping_field, source_ref, str(exc)))
                continue

            cache_key = (connector_id, mapping_field.source_table)
            rows = row_cache.get(cache_key)
            if rows is None:
                rows = [
                    StagingValue(payload=row.payload or {}, period=row.period)
                    for row in self._staging.list_rows(
                        connector_id=connector_id,
                        source_table=mapping_field.source_table,
                    )
                ]
                row_cache[cache_key] = rows

            accumulate_field(
                projection,
                FieldProjection(
                    field_id=mapping_field.id,
                    source_table=mapping_field.source_table,
                    source_column=mapping_field.source_column,
                    target_metric_code=mapping_field.target_metric_code,
                    transform=transform,
                    unit=mapping_field.unit,
                ),
                rows,
            )

        result_rows = self._result_rows(organization_id, profile.id, projection)
        self._results.bulk_upsert(result_rows)

        edges = [
            {
                "organization_id": organization_id,
                "from_ref": edge.from_ref,
                "to_ref": edge.to_ref,
                "relation_type": FIELD_MAPPING_RELATION,
                "row_count": edge.row_count,
                "periods": sorted(edge.periods),
                "metadata": {"profile_id": str(profile.id), "transforms": edge.transforms},
            }
            for edge in projection.lineage.values()
        ]
        self._lineage.upsert_edges(edges, batch_size=self._settings.lineage_batch_size)

        result = MappingRunResult(
            profile_id=profile.id,
            metrics_processed=len(result_rows),
            metric_codes=sorted(projection.metric_codes()),
            rows_consumed=projection.rows_consumed,
            rows_skipped=projection.rows_skipped,
            lineage_edges=len(edges),
            skipped_fields=skipped_fields,
        )
        self._recorder.record(
            organization_id,
            MAPPING_EVENT,
            request={"organization_id": organization_id, "profile_id": profile.id},
            result=result.to_dict(),
            metadata={
                "profile_id": str(profile.id),
                "metrics_processed": result.metrics_processed,
                "rows_skipped": result.rows_skipped,
                "skipped_fields": len(skipped_fields),
            },
        )

        logger.info(
            "Mapping run for profile %s: %d metric values from %d rows (%d rows skipped, %d fields skipped)",
            profile.id,
            result.metrics_processed,
            result.rows_consumed,
            result.rows_skipped,
            len(skipped_fields),
        )
        return result

    def _result_rows(
        self,
        organization_id: uuid.UUID,
        profile_id: uuid.UUID,
        projection: Projection,
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for metric_code, periods in projection.series.items():
            contributors = projection.sources.get(metric_code, [])
            first = contributors[0] if contributors else None
            lineage = {
                "profile_id": str(profile_id),
                "source_table": first.source_table if first else None,
                "source_column": first.source_column if first else None,
                "sources": [
                    {
                        "source_table": c.source_table,
                        "source_column": c.source_column,
                        "transform": describe_transform(c.transform),
                    }
                    for c in contributors
                ],
            }
            unit = (first.unit if first else None) or UNKNOWN_UNIT
            for period, value in periods.items():
                rows.append(
                    {
                        "organization_id": organization_id,
                        "metric_code": metric_code,
                        "period": period,
                        "value": value,
                        "unit": unit,
                        "lineage": lineage,
                        "quality_score": self._settings.mapping_quality_score,
                        "source_profile_id": profile_id,
                    }
                )
        return rows


def _skipped(mapping_field: Any, source_ref: str, reason: str) -> dict[str, Any]:
    return {
        "field_id": str(mapping_field.id) if mapping_field.id is not None else None,
        "source": source_ref,
        "target_metric_code": mapping_field.target_metric_code,
        "reason": reason,
    }
