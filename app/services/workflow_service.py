"""
app/services/workflow_service.py

End-to-end workflow orchestrator.

Sequences the pipeline steps for one organization::

    resolve_mapping_profile -> run_mapping -> evaluate_kpis -> validate_data

Each successful step is committed on its own, so a later failure never
undoes earlier results.  A failing step is rolled back, recorded with its
error, and stops the sequence; the run status becomes ``partial``.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.errors import NotFoundError, PipelineError
from app.services.kpi_evaluation_service import KPIEvaluationService
from app.services.mapping_service import MappingService
from app.services.validation_service import ValidationService
from db.repositories.mapping_repository import MappingRepository

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_PARTIAL = "partial"

_GENERIC_STEP_ERROR = "Step failed unexpectedly"


@dataclass(frozen=True)
class WorkflowStep:
    step: int
    name: str
    status: str
    duration_ms: int
    result: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "step": self.step,
            "name": self.name,
            "status": self.status,
            "duration_ms": self.duration_ms,
        }
        if self.status == STATUS_SUCCESS:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        return payload


class WorkflowService:
    """
    Runs the pipeline steps in order, owning the transaction boundary of
    each step.
    """

    def __init__(
        self,
        session: Session,
        *,
        mapping_repository: MappingRepository | None = None,
        mapping_service: MappingService | None = None,
        evaluation_service: KPIEvaluationService | None = None,
        validation_service: ValidationService | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._session = session
        self._mappings = mapping_repository or MappingRepository(session)
        self._mapping_service = mapping_service or MappingService.from_session(session)
        self._evaluation_service = evaluation_service or KPIEvaluationService.from_session(session)
        self._validation_service = validation_service or ValidationService.from_session(session)
        self._timer = timer

    def run(
        self,
        organization_id: uuid.UUID,
        profile_id: uuid.UUID | None = None,
    ) -> dict[str, Any]:
        started_at = datetime.now(tz=timezone.utc)
        run_started = self._timer()
        steps: list[WorkflowStep] = []
        resolved: dict[str, uuid.UUID] = {}

        def resolve_profile() -> dict[str, Any]:
            profile = self._resolve_profile(organization_id, profile_id)
            resolved["profile_id"] = profile.id
            return {"profile_id": str(profile.id), "name": profile.name}

        plan: list[tuple[str, Callable[[], Any]]] = [
            ("resolve_mapping_profile", resolve_profile),
            (
                "run_mapping",
                lambda: self._mapping_service.run(organization_id, resolved["profile_id"]).to_dict(),
            ),
            ("evaluate_kpis", lambda: self._evaluation_service.evaluate(organization_id).to_dict()),
            ("validate_data", lambda: self._validation_service.validate(organization_id)),
        ]

        for number, (name, action) in enumerate(plan, start=1):
            step = self._run_step(number, name, action)
            steps.append(step)
            if step.status != STATUS_SUCCESS:
                break

        status = (
            STATUS_SUCCESS
            if len(steps) == len(plan) and all(s.status == STATUS_SUCCESS for s in steps)
            else STATUS_PARTIAL
        )
        total_ms = int((self._timer() - run_started) * 1000)
        logger.info(
            "Workflow for organization %s finished with status %s in %d ms",
            organization_id,
            status,
            total_ms,
        )
        return {
            "success": True,
            "workflow": {
                "workflow_id": str(uuid.uuid4()),
                "organization_id": str(organization_id),
                "started_at": started_at.isoformat(),
                "completed_at": datetime.now(tz=timezone.utc).isoformat(),
                "total_duration_ms": total_ms,
                "status": status,
                "steps": [s.to_dict() for s in steps],
            },
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_profile(self, organization_id: uuid.UUID, profile_id: uuid.UUID | None) -> Any:
        if profile_id is not None:
            profile = self._mappings.get_profile(
                organization_id=organization_id,
                profile_id=profile_id,
            )
            if profile is None:
                raise NotFoundError(f"Mapping profile {profile_id} not found")
            return profile

        profile = self._mappings.get_latest_profile(organization_id)
        if profile is None:
            raise NotFoundError("No mapping profile found for organization")
        return profile

    def _run_step(self, number: int, name: str, action: Callable[[], Any]) -> WorkflowStep:
        started = self._timer()
        try:
            result = action()
            self._session.commit()
        except PipelineError as exc:
            self._session.rollback()
            logger.warning("Workflow step %s failed: %s", name, exc.message)
            return WorkflowStep(number, name, STATUS_FAILED, self._elapsed_ms(started), error=exc.message)
        except Exception:  # noqa: BLE001
            self._session.rollback()
            logger.exception("Workflow step %s failed unexpectedly", name)
            return WorkflowStep(number, name, STATUS_FAILED, self._elapsed_ms(started), error=_GENERIC_STEP_ERROR)

        return WorkflowStep(number, name, STATUS_SUCCESS, self._elapsed_ms(started), result=result)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._timer() - started) * 1000)
