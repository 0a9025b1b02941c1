"""
mapping/transforms.py

Field-level transforms applied while projecting staging values.

Transforms are a closed set.  ``sum`` is an aggregation marker only: the
per-period summation happens in the accumulation step of the engine, so at
field level it passes the value through unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union


class TransformError(ValueError):
    """Raised when a stored transform cannot be parsed."""


@dataclass(frozen=True)
class Identity:
    def apply(self, value: float) -> float:
        return value


@dataclass(frozen=True)
class ConvertUnit:
    factor: float

    def apply(self, value: float) -> float:
        return value * self.factor


@dataclass(frozen=True)
class SumMarker:
    def apply(self, value: float) -> float:
        return value


Transform = Union[Identity, ConvertUnit, SumMarker]


def parse_transform(raw: Mapping[str, Any] | None) -> Transform:
    """
    Parse the JSON transform stored on a mapping field.

    ``None``, ``{}`` and a missing ``type`` mean identity.  A
    ``convert_unit`` without ``factor`` uses a factor of 1.

    Raises
    ------
    TransformError
        For unknown transform types or a non-numeric factor.
    """
    if not raw:
        return Identity()
    if not isinstance(raw, Mapping):
        raise TransformError(f"Transform must be an object, got {type(raw).__name__}.")

    kind = raw.get("type")
    if kind in (None, "identity"):
        return Identity()
    if kind == "sum":
        return SumMarker()
    if kind == "convert_unit":
        factor = raw.get("factor", 1)
        if isinstance(factor, bool) or not isinstance(factor, (int, float)):
            raise TransformError(f"convert_unit factor must be numeric, got {factor!r}.")
        return ConvertUnit(factor=float(factor))

    raise TransformError(f"Unknown transform type {kind!r}.")


def describe_transform(transform: Transform) -> dict[str, Any]:
    """JSON form recorded in lineage metadata."""
    if isinstance(transform, ConvertUnit):
        return {"type": "convert_unit", "factor": transform.factor}
    if isinstance(transform, SumMarker):
        return {"type": "sum"}
    return {"type": "identity"}
