"""
tests/test_mapping_engine.py

Pure tests for field transforms and staging-row accumulation.
No database, no I/O.
"""

from __future__ import annotations

import pytest

from mapping.engine import (
    UNKNOWN_PERIOD,
    FieldProjection,
    Projection,
    StagingValue,
    accumulate_field,
    coerce_numeric,
    normalize_period,
)
from mapping.transforms import (
    ConvertUnit,
    Identity,
    SumMarker,
    TransformError,
    describe_transform,
    parse_transform,
)


def _projection_field(column: str = "kwh", metric: str = "E1-1.scope1", transform=None, unit="tCO2e") -> FieldProjection:
    return FieldProjection(
        field_id=None,
        source_table="energy_usage",
        source_column=column,
        target_metric_code=metric,
        transform=transform or Identity(),
        unit=unit,
    )


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


class TestParseTransform:
    @pytest.mark.parametrize("raw", [None, {}, {"type": "identity"}, {"factor": 3}])
    def test_identity_variants(self, raw) -> None:
        assert parse_transform(raw) == Identity()

    def test_convert_unit_with_factor(self) -> None:
        assert parse_transform({"type": "convert_unit", "factor": 0.001}) == ConvertUnit(0.001)

    def test_convert_unit_without_factor_defaults_to_one(self) -> None:
        transform = parse_transform({"type": "convert_unit"})
        assert transform == ConvertUnit(1.0)
        assert transform.apply(42.0) == 42.0

    def test_sum_passes_values_through(self) -> None:
        transform = parse_transform({"type": "sum"})
        assert isinstance(transform, SumMarker)
        assert transform.apply(7.5) == 7.5

    def test_unknown_type_is_rejected(self) -> None:
        with pytest.raises(TransformError):
            parse_transform({"type": "log10"})

    @pytest.mark.parametrize("factor", ["0.001", True, None, [1]])
    def test_non_numeric_factor_is_rejected(self, factor) -> None:
        with pytest.raises(TransformError):
            parse_transform({"type": "convert_unit", "factor": factor})

    def test_describe_round_trips_the_tag(self) -> None:
        assert describe_transform(ConvertUnit(2.0)) == {"type": "convert_unit", "factor": 2.0}
        assert describe_transform(SumMarker()) == {"type": "sum"}
        assert describe_transform(Identity()) == {"type": "identity"}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


class TestValueHelpers:
    @pytest.mark.parametrize("raw, expected", [(5, 5.0), (2.5, 2.5), (" 12.5 ", 12.5), ("1e3", 1000.0)])
    def test_coerce_numeric_accepts_numbers(self, raw, expected) -> None:
        assert coerce_numeric(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", True, {"a": 1}, [1], "nan", "inf"])
    def test_coerce_numeric_rejects_non_numbers(self, raw) -> None:
        with pytest.raises(ValueError):
            coerce_numeric(raw)

    def test_period_defaults_to_unknown(self) -> None:
        assert normalize_period(None) == UNKNOWN_PERIOD
        assert normalize_period("  ") == UNKNOWN_PERIOD

    def test_period_is_coerced_to_string(self) -> None:
        assert normalize_period(2024) == "2024"
        assert normalize_period("2024-Q1") == "2024-Q1"


# ---------------------------------------------------------------------------
# Accumulation
# ---------------------------------------------------------------------------


class TestAccumulateField:
    def test_convert_unit_scenario(self) -> None:
        projection = Projection()
        consumed = accumulate_field(
            projection,
            _projection_field(transform=ConvertUnit(0.001)),
            [StagingValue(payload={"kwh": 1000}, period="2024-Q1")],
        )

        assert consumed == 1
        assert projection.series == {"E1-1.scope1": {"2024-Q1": pytest.approx(1.0)}}

    def test_values_in_same_period_are_summed(self) -> None:
        projection = Projection()
        accumulate_field(
            projection,
            _projection_field(),
            [
                StagingValue(payload={"kwh": 10}, period="2024-Q1"),
                StagingValue(payload={"kwh": "5"}, period="2024-Q1"),
                StagingValue(payload={"kwh": 1}, period="2024-Q2"),
            ],
        )

        assert projection.series["E1-1.scope1"] == {"2024-Q1": 15.0, "2024-Q2": 1.0}
        assert projection.metric_period_count == 2

    def test_null_and_missing_values_are_ignored_silently(self) -> None:
        projection = Projection()
        consumed = accumulate_field(
            projection,
            _projection_field(),
            [
                StagingValue(payload={"kwh": None}, period="2024-Q1"),
                StagingValue(payload={"other": 4}, period="2024-Q1"),
            ],
        )

        assert consumed == 0
        assert projection.rows_skipped == 0
        assert projection.series == {}
        assert projection.sources == {}

    def test_non_numeric_values_are_counted_as_skipped(self) -> None:
        projection = Projection()
        consumed = accumulate_field(
            projection,
            _projection_field(),
            [
                StagingValue(payload={"kwh": "n/a"}, period="2024-Q1"),
                StagingValue(payload={"kwh": 3}, period="2024-Q1"),
            ],
        )

        assert consumed == 1
        assert projection.rows_skipped == 1
        assert projection.series["E1-1.scope1"]["2024-Q1"] == 3.0

    def test_missing_period_maps_to_unknown(self) -> None:
        projection = Projection()
        accumulate_field(projection, _projection_field(), [StagingValue(payload={"kwh": 2})])

        assert projection.series["E1-1.scope1"] == {UNKNOWN_PERIOD: 2.0}

    def test_two_fields_feed_one_metric(self) -> None:
        projection = Projection()
        gas = _projection_field(column="gas")
        diesel = _projection_field(column="diesel")
        accumulate_field(projection, gas, [StagingValue(payload={"gas": 2}, period="2024")])
        accumulate_field(projection, diesel, [StagingValue(payload={"diesel": 3}, period="2024")])

        assert projection.series["E1-1.scope1"]["2024"] == 5.0
        assert projection.sources["E1-1.scope1"] == [gas, diesel]

    def test_lineage_is_aggregated_per_source_and_metric(self) -> None:
        projection = Projection()
        accumulate_field(
            projection,
            _projection_field(transform=ConvertUnit(0.5)),
            [
                StagingValue(payload={"kwh": 1}, period="2024-Q2"),
                StagingValue(payload={"kwh": 1}, period="2024-Q1"),
                StagingValue(payload={"kwh": 1}, period="2024-Q1"),
            ],
        )

        edge = projection.lineage[("energy_usage.kwh", "E1-1.scope1")]
        assert edge.row_count == 3
        assert edge.periods == {"2024-Q1", "2024-Q2"}
        assert edge.transforms == [{"type": "convert_unit", "factor": 0.5}]
