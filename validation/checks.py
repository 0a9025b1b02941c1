"""
validation/checks.py

The five data-quality checks run over an organization's KPI result set.

Checks
------
completeness          required metric codes present
consistency           energy metrics reported in energy units
plausibility          no unexpected negatives, scope 1 within range
temporal_consistency  period-over-period change within threshold
data_lineage          staging data exists behind the KPIs
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from validation.base import (
    BaseValidationCheck,
    CheckResult,
    CheckStatus,
    KPIObservation,
    Severity,
    ValidationContext,
)

DEFAULT_REQUIRED_METRIC_CODES: tuple[str, ...] = (
    "E1-1.scope1",
    "E1-1.scope2",
    "E1-2.energy_total",
    "S1-1.headcount",
)
DEFAULT_ENERGY_UNITS: tuple[str, ...] = ("kWh", "MWh", "GWh")


@dataclass(frozen=True)
class ValidationThresholds:
    required_metric_codes: tuple[str, ...] = DEFAULT_REQUIRED_METRIC_CODES
    energy_units: tuple[str, ...] = DEFAULT_ENERGY_UNITS
    scope1_implausible_threshold: float = 1_000_000.0
    temporal_change_threshold: float = 0.3


class CompletenessCheck(BaseValidationCheck):
    check_type = "completeness"

    def __init__(self, required_metric_codes: Sequence[str]) -> None:
        self._required = tuple(required_metric_codes)

    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        present = {obs.metric_code for obs in context.observations}
        missing = [code for code in self._required if code not in present]
        if missing:
            return [
                CheckResult(
                    check_type=self.check_type,
                    status=CheckStatus.FAIL,
                    severity=Severity.HIGH,
                    message=f"Missing {len(missing)} required KPIs",
                    affected_kpis=tuple(missing),
                    details={"missing_kpis": missing},
                )
            ]
        return [
            CheckResult(
                check_type=self.check_type,
                status=CheckStatus.PASS,
                severity=Severity.LOW,
                message="All required KPIs present",
            )
        ]


class ConsistencyCheck(BaseValidationCheck):
    check_type = "consistency"

    def __init__(self, energy_units: Sequence[str]) -> None:
        self._units = frozenset(energy_units)

    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        affected: dict[str, str] = {}
        for obs in context.observations:
            if "energy" not in obs.metric_code or not obs.unit:
                continue
            if obs.unit not in self._units:
                affected.setdefault(obs.metric_code, obs.unit)

        if not affected:
            return []
        codes = sorted(affected)
        return [
            CheckResult(
                check_type=self.check_type,
                status=CheckStatus.WARNING,
                severity=Severity.MEDIUM,
                message=f"{len(codes)} KPIs have unexpected units",
                affected_kpis=tuple(codes),
                details={
                    "unexpected_units": {code: affected[code] for code in codes},
                    "allowed_units": sorted(self._units),
                },
            )
        ]


class PlausibilityCheck(BaseValidationCheck):
    check_type = "plausibility"

    def __init__(self, scope1_threshold: float) -> None:
        self._scope1_threshold = scope1_threshold

    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        findings: list[str] = []
        affected: set[str] = set()
        for obs in _sorted(context.observations):
            if obs.value < 0 and "reduction" not in obs.metric_code:
                findings.append(f"{obs.metric_code} ({obs.period}): negative value ({obs.value})")
                affected.add(obs.metric_code)
            if "scope1" in obs.metric_code and obs.value > self._scope1_threshold:
                findings.append(f"{obs.metric_code} ({obs.period}): unusually high ({obs.value} tCO2e)")
                affected.add(obs.metric_code)

        if findings:
            return [
                CheckResult(
                    check_type=self.check_type,
                    status=CheckStatus.WARNING,
                    severity=Severity.MEDIUM,
                    message=f"{len(findings)} KPI values are implausible",
                    affected_kpis=tuple(sorted(affected)),
                    details={"implausible_values": findings},
                )
            ]
        return [
            CheckResult(
                check_type=self.check_type,
                status=CheckStatus.PASS,
                severity=Severity.LOW,
                message="All KPI values within plausible ranges",
            )
        ]


class TemporalConsistencyCheck(BaseValidationCheck):
    check_type = "temporal_consistency"

    def __init__(self, change_threshold: float) -> None:
        self._threshold = change_threshold

    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        by_metric: dict[str, list[KPIObservation]] = {}
        for obs in context.observations:
            by_metric.setdefault(obs.metric_code, []).append(obs)

        deviations: list[str] = []
        affected: list[str] = []
        for code in sorted(by_metric):
            values = sorted(by_metric[code], key=lambda obs: obs.period)
            for previous, current in zip(values, values[1:]):
                if previous.value <= 0:
                    continue
                change = abs(current.value - previous.value) / previous.value
                if change > self._threshold:
                    deviations.append(
                        f"{code}: {change * 100:.1f}% change from {previous.period} to {current.period}"
                    )
                    if code not in affected:
                        affected.append(code)

        if not deviations:
            return []
        return [
            CheckResult(
                check_type=self.check_type,
                status=CheckStatus.WARNING,
                severity=Severity.MEDIUM,
                message=f"{len(deviations)} period-over-period changes exceed {self._threshold:.0%}",
                affected_kpis=tuple(affected),
                details={"large_deviations": deviations},
            )
        ]


class DataLineageCheck(BaseValidationCheck):
    check_type = "data_lineage"

    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        if context.staging_row_count <= 0:
            return [
                CheckResult(
                    check_type=self.check_type,
                    status=CheckStatus.FAIL,
                    severity=Severity.CRITICAL,
                    message="No staging data found - KPIs may not be traceable",
                )
            ]
        return [
            CheckResult(
                check_type=self.check_type,
                status=CheckStatus.PASS,
                severity=Severity.LOW,
                message=f"Data lineage verified ({context.staging_row_count} staging rows)",
                details={"staging_row_count": context.staging_row_count},
            )
        ]


def build_checks(thresholds: ValidationThresholds) -> list[BaseValidationCheck]:
    """Instantiate the checks in reporting order."""
    return [
        CompletenessCheck(thresholds.required_metric_codes),
        ConsistencyCheck(thresholds.energy_units),
        PlausibilityCheck(thresholds.scope1_implausible_threshold),
        TemporalConsistencyCheck(thresholds.temporal_change_threshold),
        DataLineageCheck(),
    ]


def run_checks(
    context: ValidationContext,
    thresholds: ValidationThresholds | None = None,
) -> list[CheckResult]:
    """
    Run every check against *context* and collect their results in order.
    """
    results: list[CheckResult] = []
    for check in build_checks(thresholds or ValidationThresholds()):
        results.extend(check.run(context))
    return results


def summarize(results: Sequence[CheckResult]) -> dict[str, int]:
    return {
        "total_checks": len(results),
        "passed": sum(1 for r in results if r.status is CheckStatus.PASS),
        "warnings": sum(1 for r in results if r.status is CheckStatus.WARNING),
        "failed": sum(1 for r in results if r.status is CheckStatus.FAIL),
    }


def _sorted(observations: Sequence[KPIObservation]) -> list[KPIObservation]:
    return sorted(observations, key=lambda obs: (obs.metric_code, obs.period))
