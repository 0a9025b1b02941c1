"""
kpi/evaluator.py

Pure KPI rule evaluation over a canonical metric series.

The evaluator parses rules, orders them by dependency, evaluates each
formula against the working series, and reports which (metric, period)
values changed relative to what is already persisted.  Persistence is the
caller's job (see ``app/services/kpi_evaluation_service.py``).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from kpi.dependency_graph import evaluation_order
from kpi.formulas import (
    Formula,
    FormulaError,
    MissingDenominatorPolicy,
    parse_formula,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSpec:
    """An active rule as loaded from storage."""

    rule_id: uuid.UUID | str
    metric_code: str
    formula: Mapping[str, Any] | None
    unit: str | None = None


@dataclass(frozen=True)
class ComputedValue:
    rule_id: str
    metric_code: str
    period: str
    value: float
    unit: str | None
    formula: dict[str, Any]


@dataclass(frozen=True)
class FailedRule:
    rule_id: str
    metric_code: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"rule_id": self.rule_id, "metric_code": self.metric_code, "error": self.error}


@dataclass
class EvaluationOutcome:
    """
    Result of one evaluation pass.

    ``evaluated`` lists the rules that ran without error, in evaluation
    order, whether or not their values changed.  ``changes`` holds only the
    values that are new or differ from the persisted series; ``series`` is
    the full working series after all rules have run.
    """

    evaluation_order: list[str] = field(default_factory=list)
    evaluated: list[str] = field(default_factory=list)
    changes: list[ComputedValue] = field(default_factory=list)
    failed_rules: list[FailedRule] = field(default_factory=list)
    series: dict[str, dict[str, float]] = field(default_factory=dict)

    @property
    def rules_evaluated(self) -> int:
        return len(self.evaluated)

    @property
    def metric_codes(self) -> list[str]:
        return list(self.evaluated)


def evaluate_rules(
    rules: Sequence[RuleSpec],
    persisted: Mapping[str, Mapping[str, float]],
    *,
    default_policy: MissingDenominatorPolicy = MissingDenominatorPolicy.ONE,
) -> EvaluationOutcome:
    """
    Evaluate *rules* against the *persisted* metric series.

    Malformed formulas are reported in ``failed_rules`` and excluded from the
    dependency graph.  A rule that raises while evaluating is reported the
    same way and the remaining rules still run.

    Raises
    ------
    kpi.dependency_graph.DependencyCycleError
        When the parsed rules reference each other in a cycle.  Nothing is
        evaluated in that case.
    """
    outcome = EvaluationOutcome(
        series={code: dict(periods) for code, periods in persisted.items()},
    )

    parsed: dict[str, tuple[RuleSpec, Formula]] = {}
    for rule in rules:
        try:
            formula = parse_formula(rule.formula, default_policy=default_policy)
        except FormulaError as exc:
            logger.error("Rule %s (%s) has an invalid formula: %s", rule.rule_id, rule.metric_code, exc)
            outcome.failed_rules.append(FailedRule(str(rule.rule_id), rule.metric_code, str(exc)))
            continue
        parsed[rule.metric_code] = (rule, formula)

    outcome.evaluation_order = evaluation_order(
        {code: formula.references() for code, (_, formula) in parsed.items()}
    )

    for code in outcome.evaluation_order:
        rule, formula = parsed[code]
        try:
            computed = formula.evaluate(outcome.series)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Evaluation of rule %s (%s) failed", rule.rule_id, code)
            outcome.failed_rules.append(FailedRule(str(rule.rule_id), code, str(exc)))
            continue

        outcome.evaluated.append(code)
        current = outcome.series.setdefault(code, {})
        stored = persisted.get(code, {})
        for period, value in computed.items():
            current[period] = value
            if period in stored and stored[period] == value:
                continue
            outcome.changes.append(
                ComputedValue(
                    rule_id=str(rule.rule_id),
                    metric_code=code,
                    period=period,
                    value=value,
                    unit=rule.unit,
                    formula=formula.to_dict(),
                )
            )

    return outcome
