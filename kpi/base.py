"""
kpi/base.py

Abstract base class for declarative KPI formulas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping

PeriodValues = dict[str, float]
"""period -> value for one metric code."""


class BaseKPIFormula(ABC):
    """
    Contract for KPI formula variants.

    A formula reads the working metric series (``metric_code -> period ->
    value``) and returns the values it computes for its own metric code,
    keyed by period.

    Implementations stay pure: nothing inside
    :meth:`evaluate` may touch a database or a logger.
    """

    @abstractmethod
    def references(self) -> tuple[str, ...]:
        """
        Metric codes this formula reads, in declaration order.
        """

    @abstractmethod
    def evaluate(self, series: Mapping[str, Mapping[str, float]]) -> PeriodValues:
        """
        Compute period values from *series*.

        Parameters
        ----------
        series:
            Current working metric series.  Missing metric codes behave as
            empty period maps.

        Returns
        -------
        dict[str, float]
            Computed values keyed by period.
        """

    @abstractmethod
    def to_dict(self) -> dict:
        """JSON form, as stored on the rule."""
