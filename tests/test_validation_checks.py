"""
tests/test_validation_checks.py

Pure tests for the five data-quality checks.
"""

from __future__ import annotations

import pytest

from validation.base import CheckStatus, KPIObservation, Severity, ValidationContext
from validation.checks import (
    ValidationThresholds,
    run_checks,
    summarize,
)

REQUIRED_PRESENT = (
    KPIObservation("E1-1.scope1", "2024", 100.0, "tCO2e"),
    KPIObservation("E1-1.scope2", "2024", 50.0, "tCO2e"),
    KPIObservation("E1-2.energy_total", "2024", 900.0, "MWh"),
    KPIObservation("S1-1.headcount", "2024", 12.0, "persons"),
)


def _by_type(context: ValidationContext, thresholds: ValidationThresholds | None = None) -> dict:
    return {r.check_type: r for r in run_checks(context, thresholds)}


class TestCompleteness:
    def test_missing_scope2_fails_high(self) -> None:
        observations = tuple(o for o in REQUIRED_PRESENT if o.metric_code != "E1-1.scope2")
        result = _by_type(ValidationContext(observations, staging_row_count=3))["completeness"]

        assert result.status is CheckStatus.FAIL
        assert result.severity is Severity.HIGH
        assert result.affected_kpis == ("E1-1.scope2",)

    def test_all_required_present_passes(self) -> None:
        result = _by_type(ValidationContext(REQUIRED_PRESENT, staging_row_count=3))["completeness"]
        assert result.status is CheckStatus.PASS
        assert result.severity is Severity.LOW

    def test_required_codes_are_configurable(self) -> None:
        thresholds = ValidationThresholds(required_metric_codes=("X.only",))
        result = _by_type(ValidationContext(REQUIRED_PRESENT, 1), thresholds)["completeness"]
        assert result.affected_kpis == ("X.only",)


class TestConsistency:
    def test_clean_units_emit_no_record(self) -> None:
        assert "consistency" not in _by_type(ValidationContext(REQUIRED_PRESENT, 1))

    def test_unexpected_energy_unit_warns(self) -> None:
        observations = REQUIRED_PRESENT + (KPIObservation("E1-2.energy_renewable", "2024", 5.0, "GJ"),)
        result = _by_type(ValidationContext(observations, 1))["consistency"]

        assert result.status is CheckStatus.WARNING
        assert result.severity is Severity.MEDIUM
        assert result.affected_kpis == ("E1-2.energy_renewable",)

    def test_energy_rows_without_unit_are_ignored(self) -> None:
        observations = REQUIRED_PRESENT + (KPIObservation("E1-2.energy_other", "2024", 5.0, None),)
        assert "consistency" not in _by_type(ValidationContext(observations, 1))


class TestPlausibility:
    def test_negative_value_warns(self) -> None:
        observations = REQUIRED_PRESENT + (KPIObservation("E1-3.waste", "2024", -1.0, "t"),)
        result = _by_type(ValidationContext(observations, 1))["plausibility"]

        assert result.status is CheckStatus.WARNING
        assert result.affected_kpis == ("E1-3.waste",)

    def test_negative_reduction_is_allowed(self) -> None:
        observations = REQUIRED_PRESENT + (KPIObservation("E1-4.reduction", "2024", -10.0, "tCO2e"),)
        assert _by_type(ValidationContext(observations, 1))["plausibility"].status is CheckStatus.PASS

    def test_scope1_above_threshold_warns(self) -> None:
        observations = (KPIObservation("E1-1.scope1", "2024", 2_000_000.0, "tCO2e"),)
        result = _by_type(ValidationContext(observations, 1))["plausibility"]
        assert result.status is CheckStatus.WARNING
        assert "unusually high" in result.details["implausible_values"][0]


class TestTemporalConsistency:
    def test_large_change_warns(self) -> None:
        observations = (
            KPIObservation("E1-1.scope1", "2023", 100.0),
            KPIObservation("E1-1.scope1", "2024", 140.0),
        )
        result = _by_type(ValidationContext(observations, 1))["temporal_consistency"]

        assert result.status is CheckStatus.WARNING
        assert result.affected_kpis == ("E1-1.scope1",)
        assert "40.0% change from 2023 to 2024" in result.details["large_deviations"][0]

    def test_change_at_threshold_is_clean(self) -> None:
        observations = (
            KPIObservation("E1-1.scope1", "2023", 100.0),
            KPIObservation("E1-1.scope1", "2024", 130.0),
        )
        assert "temporal_consistency" not in _by_type(ValidationContext(observations, 1))

    def test_zero_previous_value_is_not_compared(self) -> None:
        observations = (
            KPIObservation("E1-1.scope1", "2023", 0.0),
            KPIObservation("E1-1.scope1", "2024", 500.0),
        )
        assert "temporal_consistency" not in _by_type(ValidationContext(observations, 1))

    def test_periods_are_sorted_lexicographically(self) -> None:
        observations = (
            KPIObservation("m", "2024-Q2", 100.0),
            KPIObservation("m", "2024-Q1", 100.0),
        )
        assert "temporal_consistency" not in _by_type(ValidationContext(observations, 1))


class TestDataLineage:
    def test_no_staging_rows_fails_critical(self) -> None:
        result = _by_type(ValidationContext(REQUIRED_PRESENT, staging_row_count=0))["data_lineage"]
        assert result.status is CheckStatus.FAIL
        assert result.severity is Severity.CRITICAL

    def test_staging_rows_pass(self) -> None:
        result = _by_type(ValidationContext(REQUIRED_PRESENT, staging_row_count=7))["data_lineage"]
        assert result.status is CheckStatus.PASS
        assert "7 staging rows" in result.message


class TestRunChecks:
    def test_results_are_deterministic(self) -> None:
        context = ValidationContext(
            REQUIRED_PRESENT[1:] + (KPIObservation("E1-2.energy_x", "2024", 1.0, "BTU"),),
            staging_row_count=0,
        )
        first = [r.to_dict() for r in run_checks(context)]
        second = [r.to_dict() for r in run_checks(context)]
        assert first == second

    def test_summary_counts_statuses(self) -> None:
        observations = tuple(o for o in REQUIRED_PRESENT if o.metric_code != "E1-1.scope2")
        results = run_checks(ValidationContext(observations, staging_row_count=0))

        assert summarize(results) == {"total_checks": 3, "passed": 1, "warnings": 0, "failed": 2}

    @pytest.mark.parametrize("staging_rows", [0, 5])
    def test_report_order_is_stable(self, staging_rows) -> None:
        types = [r.check_type for r in run_checks(ValidationContext(REQUIRED_PRESENT, staging_rows))]
        assert types == ["completeness", "plausibility", "data_lineage"]
