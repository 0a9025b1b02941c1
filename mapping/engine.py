"""
mapping/engine.py

Projects staging rows onto the canonical metric series.

All functions operate on pre-fetched rows.  Loading profiles, reading the
staging store and persisting results is the caller's job
(see ``app/services/mapping_service.py``).
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping

from mapping.transforms import Transform, describe_transform

logger = logging.getLogger(__name__)

UNKNOWN_PERIOD = "unknown"
FIELD_MAPPING_RELATION = "field_mapping"

MetricSeries = dict[str, dict[str, float]]
"""metric_code -> period -> value"""


@dataclass(frozen=True)
class FieldProjection:
    """
    One active mapping field, with its transform already parsed.
    """

    field_id: uuid.UUID | None
    source_table: str
    source_column: str
    target_metric_code: str
    transform: Transform
    unit: str | None = None

    @property
    def source_ref(self) -> str:
        return f"{self.source_table}.{self.source_column}"


@dataclass(frozen=True)
class StagingValue:
    payload: Mapping[str, Any]
    period: Any = None


@dataclass
class LineageAggregate:
    """
    Contribution of one source field to one metric code during a run.
    """

    from_ref: str
    to_ref: str
    row_count: int = 0
    periods: set[str] = field(default_factory=set)
    transforms: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class Projection:
    """
    Accumulated output of a mapping run.

    ``series`` holds running sums per metric code and period.  ``sources``
    keeps the fields that contributed to each metric code, in the order they
    were first seen.
    """

    series: MetricSeries = field(default_factory=dict)
    sources: dict[str, list[FieldProjection]] = field(default_factory=dict)
    lineage: dict[tuple[str, str], LineageAggregate] = field(default_factory=dict)
    rows_consumed: int = 0
    rows_skipped: int = 0

    @property
    def metric_period_count(self) -> int:
        return sum(len(periods) for periods in self.series.values())

    def metric_codes(self) -> list[str]:
        return list(self.series.keys())


def normalize_period(raw: Any) -> str:
    """
    Coerce a row's period to its string key; rows without one share ``"unknown"``.
    """
    if raw is None:
        return UNKNOWN_PERIOD
    text = str(raw).strip()
    return text or UNKNOWN_PERIOD


def coerce_numeric(value: Any) -> float:
    """
    Convert a payload value to ``float``.

    Raises
    ------
    ValueError
        For booleans, non-numeric strings, containers and other types.
    """
    if isinstance(value, bool):
        raise ValueError(f"Boolean {value!r} is not a numeric measurement.")
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        number = float(value.strip())
    else:
        raise ValueError(f"Unsupported value type {type(value).__name__}.")
    if not math.isfinite(number):
        raise ValueError(f"Non-finite value {value!r}.")
    return number


def accumulate_field(
    projection: Projection,
    field_projection: FieldProjection,
    rows: Iterable[StagingValue],
) -> int:
    """
    Fold the rows of one source table into *projection* for one mapping field.

    Rows whose column is null or absent are ignored.  Rows whose value is not
    numeric are counted in ``rows_skipped`` and logged; they do not abort the
    field.

    Returns
    -------
    int
        Number of rows consumed for this field.
    """
    metric_code = field_projection.target_metric_code
    consumed = 0

    for row in rows:
        raw_value = row.payload.get(field_projection.source_column)
        if raw_value is None:
            continue

        try:
            value = field_projection.transform.apply(coerce_numeric(raw_value))
        except (TypeError, ValueError) as exc:
            projection.rows_skipped += 1
            logger.warning(
                "Skipping non-numeric value for %s -> %s: %s",
                field_projection.source_ref,
                metric_code,
                exc,
            )
            continue

        period = normalize_period(row.period)
        periods = projection.series.setdefault(metric_code, {})
        periods[period] = periods.get(period, 0.0) + value

        edge = projection.lineage.get((field_projection.source_ref, metric_code))
        if edge is None:
            edge = LineageAggregate(from_ref=field_projection.source_ref, to_ref=metric_code)
            edge.transforms.append(describe_transform(field_projection.transform))
            projection.lineage[(field_projection.source_ref, metric_code)] = edge
        edge.row_count += 1
        edge.periods.add(period)
        consumed += 1

    if consumed:
        contributors = projection.sources.setdefault(metric_code, [])
        if field_projection not in contributors:
            contributors.append(field_projection)

    projection.rows_consumed += consumed
    return consumed
