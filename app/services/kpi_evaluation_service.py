"""
app/services/kpi_evaluation_service.py

KPI formula evaluation orchestrator.

Wires KPIRuleRepository -> kpi.evaluator -> KPIResultRepository ->
AuditRecorder into one run.  The working series is seeded from the
persisted results, so rules can build on mapped metrics and on each other.

Failure contract
----------------
- No active rules                 -> BadRequestError
- Rules reference each other in a
  cycle                           -> BadRequestError naming the codes; nothing written
- Malformed formula               -> rule reported in ``failed_rules``, others run
- Rule evaluation error           -> rule reported in ``failed_rules``, others run
- Persistence failure             -> propagates; caller rolls back
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.config import PipelineSettings, get_pipeline_settings
from app.errors import BadRequestError
from app.services.audit_service import AuditRecorder
from db.repositories.kpi_result_repository import KPIResultRepository
from db.repositories.kpi_rule_repository import KPIRuleRepository
from kpi.dependency_graph import DependencyCycleError
from kpi.evaluator import RuleSpec, evaluate_rules

logger = logging.getLogger(__name__)

EVALUATION_EVENT = "kpi_evaluation"


@dataclass(frozen=True)
class EvaluationRunResult:
    rules_loaded: int
    rules_evaluated: int
    results_written: int
    metric_codes: list[str]
    evaluation_order: list[str]
    failed_rules: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "rules_loaded": self.rules_loaded,
            "rules_evaluated": self.rules_evaluated,
            "results_written": self.results_written,
            "metric_codes": list(self.metric_codes),
            "evaluation_order": list(self.evaluation_order),
            "failed_rules": list(self.failed_rules),
        }


class KPIEvaluationService:
    def __init__(
        self,
        *,
        rule_repository: KPIRuleRepository,
        result_repository: KPIResultRepository,
        recorder: AuditRecorder,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._rules = rule_repository
        self._results = result_repository
        self._recorder = recorder
        self._settings = settings or get_pipeline_settings()

    @classmethod
    def from_session(
        cls,
        session: Session,
        settings: PipelineSettings | None = None,
    ) -> "KPIEvaluationService":
        return cls(
            rule_repository=KPIRuleRepository(session),
            result_repository=KPIResultRepository(session),
            recorder=AuditRecorder.from_session(session),
            settings=settings,
        )

    def evaluate(self, organization_id: uuid.UUID) -> EvaluationRunResult:
        rules = self._rules.list_active(organization_id)
        if not rules:
            raise BadRequestError("No active KPI rules found")

        persisted: dict[str, dict[str, float]] = {}
        for row in self._results.list_results(organization_id):
            persisted.setdefault(row.metric_code, {})[row.period] = row.value

        try:
            outcome = evaluate_rules(
                [
                    RuleSpec(
                        rule_id=rule.id,
                        metric_code=rule.metric_code,
                        formula=rule.formula,
                        unit=rule.unit,
                    )
                    for rule in rules
                ],
                persisted,
                default_policy=self._settings.missing_denominator,
            )
        except DependencyCycleError as exc:
            logger.error("KPI evaluation for organization %s rejected: %s", organization_id, exc)
            raise BadRequestError(str(exc)) from exc

        evaluated_at = datetime.now(tz=timezone.utc).isoformat()
        rows = [
            {
                "organization_id": organization_id,
                "metric_code": change.metric_code,
                "period": change.period,
                "value": change.value,
                "unit": change.unit,
                "lineage": {
                    "rule_id": change.rule_id,
                    "formula": change.formula,
                    "evaluated_at": evaluated_at,
                },
                "quality_score": self._settings.evaluation_quality_score,
                "source_profile_id": None,
            }
            for change in outcome.changes
        ]
        written = self._results.bulk_upsert(rows)

        result = EvaluationRunResult(
            rules_loaded=len(rules),
            rules_evaluated=outcome.rules_evaluated,
            results_written=written,
            metric_codes=outcome.metric_codes,
            evaluation_order=outcome.evaluation_order,
            failed_rules=[failed.to_dict() for failed in outcome.failed_rules],
        )
        self._recorder.record(
            organization_id,
            EVALUATION_EVENT,
            request={"organization_id": organization_id},
            result=result.to_dict(),
            metadata={
                "rules_loaded": result.rules_loaded,
                "rules_evaluated": result.rules_evaluated,
                "results_written": result.results_written,
                "failed_rules": len(result.failed_rules),
            },
        )

        logger.info(
            "KPI evaluation for organization %s: %d of %d rules evaluated, %d values written, %d rules failed",
            organization_id,
            result.rules_evaluated,
            result.rules_loaded,
            result.results_written,
            len(result.failed_rules),
        )
        return result
