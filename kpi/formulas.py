"""
kpi/formulas.py

The closed set of KPI formula variants and their parser.

Formulas
--------
field_sum   result[p] = series[field][p]
sum         result[p] = Σ series[f][p] over fields, missing values count 0
ratio       result[p] = series[numerator][p] / series[denominator][p]

``ratio`` walks the union of periods of both series.  A missing numerator
counts as 0.  A denominator that is missing or zero is resolved by
:class:`MissingDenominatorPolicy`: ``one`` divides by 1, ``zero`` reports 0,
``skip`` omits the period.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping

from kpi.base import BaseKPIFormula, PeriodValues


class FormulaError(ValueError):
    """Raised when a stored formula cannot be parsed."""


class MissingDenominatorPolicy(str, enum.Enum):
    ONE = "one"
    ZERO = "zero"
    SKIP = "skip"

    @classmethod
    def parse(cls, raw: str) -> "MissingDenominatorPolicy":
        try:
            return cls(raw.strip().lower())
        except ValueError as exc:
            allowed = ", ".join(member.value for member in cls)
            raise FormulaError(
                f"Unknown missing-denominator policy {raw!r}. Allowed values: {allowed}."
            ) from exc


@dataclass(frozen=True)
class FieldSum(BaseKPIFormula):
    field: str

    def references(self) -> tuple[str, ...]:
        return (self.field,)

    def evaluate(self, series: Mapping[str, Mapping[str, float]]) -> PeriodValues:
        return dict(series.get(self.field, {}))

    def to_dict(self) -> dict:
        return {"type": "field_sum", "field": self.field}


@dataclass(frozen=True)
class Sum(BaseKPIFormula):
    fields: tuple[str, ...]

    def references(self) -> tuple[str, ...]:
        return self.fields

    def evaluate(self, series: Mapping[str, Mapping[str, float]]) -> PeriodValues:
        periods: dict[str, None] = {}
        for name in self.fields:
            for period in series.get(name, {}):
                periods.setdefault(period, None)

        return {
            period: sum(series.get(name, {}).get(period, 0.0) for name in self.fields)
            for period in periods
        }

    def to_dict(self) -> dict:
        return {"type": "sum", "fields": list(self.fields)}


@dataclass(frozen=True)
class Ratio(BaseKPIFormula):
    numerator: str
    denominator: str
    missing_denominator: MissingDenominatorPolicy = MissingDenominatorPolicy.ONE

    def references(self) -> tuple[str, ...]:
        return (self.numerator, self.denominator)

    def evaluate(self, series: Mapping[str, Mapping[str, float]]) -> PeriodValues:
        numerators = series.get(self.numerator, {})
        denominators = series.get(self.denominator, {})

        periods: dict[str, None] = dict.fromkeys(numerators)
        for period in denominators:
            periods.setdefault(period, None)

        results: PeriodValues = {}
        for period in periods:
            numerator = numerators.get(period, 0.0)
            denominator = denominators.get(period, 0.0)
            if denominator == 0:
                if self.missing_denominator is MissingDenominatorPolicy.SKIP:
                    continue
                if self.missing_denominator is MissingDenominatorPolicy.ZERO:
                    results[period] = 0.0
                    continue
                denominator = 1.0
            results[period] = numerator / denominator
        return results

    def to_dict(self) -> dict:
        return {
            "type": "ratio",
            "numerator": self.numerator,
            "denominator": self.denominator,
            "missing_denominator": self.missing_denominator.value,
        }


Formula = FieldSum | Sum | Ratio


def parse_formula(
    raw: Mapping[str, Any] | None,
    *,
    default_policy: MissingDenominatorPolicy = MissingDenominatorPolicy.ONE,
) -> Formula:
    """
    Parse the JSON formula stored on a KPI rule into its variant.

    A ``ratio`` may carry its own ``missing_denominator`` policy; otherwise
    *default_policy* applies.

    Raises
    ------
    FormulaError
        For unknown variants or missing/ill-typed operands.
    """
    if not isinstance(raw, Mapping):
        raise FormulaError("Formula must be an object with a 'type' key.")

    kind = raw.get("type")
    if kind == "field_sum":
        return FieldSum(field=_require_code(raw, "field"))

    if kind == "sum":
        fields = raw.get("fields")
        if not isinstance(fields, (list, tuple)) or not fields:
            raise FormulaError("sum formula requires a non-empty 'fields' list.")
        codes = []
        for item in fields:
            if not isinstance(item, str) or not item.strip():
                raise FormulaError(f"sum formula field {item!r} is not a metric code.")
            codes.append(item.strip())
        return Sum(fields=tuple(codes))

    if kind == "ratio":
        policy = default_policy
        if raw.get("missing_denominator") is not None:
            policy = MissingDenominatorPolicy.parse(str(raw["missing_denominator"]))
        return Ratio(
            numerator=_require_code(raw, "numerator"),
            denominator=_require_code(raw, "denominator"),
            missing_denominator=policy,
        )

    raise FormulaError(f"Unknown formula type {kind!r}.")


def _require_code(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise FormulaError(f"{raw.get('type')} formula requires a metric code in {key!r}.")
    return value.strip()
