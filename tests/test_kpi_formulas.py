"""
tests/test_kpi_formulas.py

Pytest unit tests for the KPI formula variants and their parser.
"""

from __future__ import annotations

import pytest

from kpi.formulas import (
    FieldSum,
    FormulaError,
    MissingDenominatorPolicy,
    Ratio,
    Sum,
    parse_formula,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseFormula:
    def test_field_sum(self) -> None:
        assert parse_formula({"type": "field_sum", "field": "E1-1.scope1"}) == FieldSum("E1-1.scope1")

    def test_sum(self) -> None:
        formula = parse_formula({"type": "sum", "fields": ["a", "b"]})
        assert formula == Sum(("a", "b"))
        assert formula.references() == ("a", "b")

    def test_ratio_uses_default_policy(self) -> None:
        formula = parse_formula(
            {"type": "ratio", "numerator": "n", "denominator": "d"},
            default_policy=MissingDenominatorPolicy.SKIP,
        )
        assert formula == Ratio("n", "d", MissingDenominatorPolicy.SKIP)

    def test_ratio_policy_on_rule_wins(self) -> None:
        formula = parse_formula(
            {"type": "ratio", "numerator": "n", "denominator": "d", "missing_denominator": "zero"},
        )
        assert formula.missing_denominator is MissingDenominatorPolicy.ZERO

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "field_sum",
            {"type": "average", "fields": ["a"]},
            {"type": "field_sum"},
            {"type": "field_sum", "field": ""},
            {"type": "sum", "fields": []},
            {"type": "sum", "fields": ["a", 3]},
            {"type": "ratio", "numerator": "n"},
            {"type": "ratio", "numerator": "n", "denominator": "d", "missing_denominator": "half"},
        ],
    )
    def test_malformed_formulas_are_rejected(self, raw) -> None:
        with pytest.raises(FormulaError):
            parse_formula(raw)

    def test_to_dict_matches_stored_shape(self) -> None:
        assert Sum(("a", "b")).to_dict() == {"type": "sum", "fields": ["a", "b"]}
        assert Ratio("n", "d").to_dict()["missing_denominator"] == "one"


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class TestFieldSum:
    def test_copies_period_map(self) -> None:
        series = {"a": {"2024": 3.0, "2023": 1.0}}
        assert FieldSum("a").evaluate(series) == {"2024": 3.0, "2023": 1.0}

    def test_missing_field_yields_nothing(self) -> None:
        assert FieldSum("a").evaluate({}) == {}


class TestSum:
    def test_missing_values_count_as_zero(self) -> None:
        series = {"scope1": {"2024": 10.0}, "scope2": {"2024": 5.0, "2023": 2.0}}
        result = Sum(("scope1", "scope2", "scope3")).evaluate(series)
        assert result == {"2024": 15.0, "2023": 2.0}


class TestRatio:
    def test_divides_matching_periods(self) -> None:
        series = {"n": {"2024": 10.0}, "d": {"2024": 4.0}}
        assert Ratio("n", "d").evaluate(series) == {"2024": 2.5}

    def test_missing_denominator_divides_by_one_by_default(self) -> None:
        series = {"n": {"2024": 10.0}}
        assert Ratio("n", "d").evaluate(series) == {"2024": 10.0}

    def test_missing_denominator_zero_policy(self) -> None:
        series = {"n": {"2024": 10.0}}
        assert Ratio("n", "d", MissingDenominatorPolicy.ZERO).evaluate(series) == {"2024": 0.0}

    def test_missing_denominator_skip_policy(self) -> None:
        series = {"n": {"2024": 10.0}}
        assert Ratio("n", "d", MissingDenominatorPolicy.SKIP).evaluate(series) == {}

    def test_missing_numerator_counts_as_zero(self) -> None:
        series = {"d": {"2024": 4.0}}
        assert Ratio("n", "d").evaluate(series) == {"2024": 0.0}

    def test_explicit_zero_denominator_divides_by_one_by_default(self) -> None:
        series = {"n": {"2024": 10.0, "2023": 6.0}, "d": {"2024": 0.0, "2023": 3.0}}
        assert Ratio("n", "d").evaluate(series) == {"2024": 10.0, "2023": 2.0}

    def test_explicit_zero_denominator_follows_zero_and_skip_policies(self) -> None:
        series = {"n": {"2024": 10.0, "2023": 6.0}, "d": {"2024": 0.0, "2023": 3.0}}
        assert Ratio("n", "d", MissingDenominatorPolicy.ZERO).evaluate(series) == {
            "2024": 0.0,
            "2023": 2.0,
        }
        assert Ratio("n", "d", MissingDenominatorPolicy.SKIP).evaluate(series) == {"2023": 2.0}

    def test_periods_are_the_union_of_both_series(self) -> None:
        series = {"n": {"2023": 1.0}, "d": {"2024": 2.0}}
        assert Ratio("n", "d").evaluate(series) == {"2023": 1.0, "2024": 0.0}


class TestMissingDenominatorPolicy:
    def test_parse_is_case_insensitive(self) -> None:
        assert MissingDenominatorPolicy.parse(" Skip ") is MissingDenominatorPolicy.SKIP

    def test_unknown_policy(self) -> None:
        with pytest.raises(FormulaError):
            MissingDenominatorPolicy.parse("infinity")
