"""
app/services/validation_service.py

Runs the data-quality checks over an organization's current KPI result set
and appends the outcome under a fresh ``run_id``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.config import PipelineSettings, get_pipeline_settings
from app.services.audit_service import AuditRecorder
from db.repositories.kpi_result_repository import KPIResultRepository
from db.repositories.staging_repository import StagingRepository
from db.repositories.validation_repository import ValidationRepository
from validation.base import KPIObservation, ValidationContext
from validation.checks import run_checks, summarize

logger = logging.getLogger(__name__)

VALIDATION_EVENT = "validation"


class ValidationService:
    def __init__(
        self,
        *,
        result_repository: KPIResultRepository,
        staging_repository: StagingRepository,
        validation_repository: ValidationRepository,
        recorder: AuditRecorder,
        settings: PipelineSettings | None = None,
        run_id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self._results = result_repository
        self._staging = staging_repository
        self._validations = validation_repository
        self._recorder = recorder
        self._settings = settings or get_pipeline_settings()
        self._run_id_factory = run_id_factory

    @classmethod
    def from_session(
        cls,
        session: Session,
        settings: PipelineSettings | None = None,
    ) -> "ValidationService":
        return cls(
            result_repository=KPIResultRepository(session),
            staging_repository=StagingRepository(session),
            validation_repository=ValidationRepository(session),
            recorder=AuditRecorder.from_session(session),
            settings=settings,
        )

    def validate(self, organization_id: uuid.UUID) -> dict[str, Any]:
        """
        Run every check and persist the results.

        Returns
        -------
        dict
            ``{success, run_id, summary, results}``.  ``summary`` counts
            checks per status.
        """
        context = ValidationContext(
            observations=tuple(
                KPIObservation(
                    metric_code=row.metric_code,
                    period=row.period,
                    value=row.value,
                    unit=row.unit,
                )
                for row in self._results.list_results(organization_id)
            ),
            staging_row_count=self._staging.count_for_organization(organization_id),
        )

        checks = run_checks(context, self._settings.thresholds)
        results = [check.to_dict() for check in checks]
        summary = summarize(checks)
        run_id = self._run_id_factory()

        self._validations.add_results(
            organization_id=organization_id,
            run_id=run_id,
            validated_at=datetime.now(tz=timezone.utc),
            results=results,
        )

        payload = {
            "success": True,
            "run_id": str(run_id),
            "summary": summary,
            "results": results,
        }
        self._recorder.record(
            organization_id,
            VALIDATION_EVENT,
            request={"organization_id": organization_id},
            result={"summary": summary, "results": results},
            metadata={"run_id": str(run_id), **summary},
        )

        logger.info(
            "Validation run %s for organization %s: %d passed, %d warnings, %d failed",
            run_id,
            organization_id,
            summary["passed"],
            summary["warnings"],
            summary["failed"],
        )
        return payload
