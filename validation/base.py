"""
validation/base.py

Shared types for KPI data-quality checks.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence


class CheckStatus(str, enum.Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class KPIObservation:
    """One persisted KPI result as seen by the checks."""

    metric_code: str
    period: str
    value: float
    unit: str | None = None


@dataclass(frozen=True)
class ValidationContext:
    """
    Everything a check may look at.

    ``staging_row_count`` is the number of staging rows reachable through
    the organization's connectors.
    """

    observations: tuple[KPIObservation, ...]
    staging_row_count: int = 0


@dataclass(frozen=True)
class CheckResult:
    check_type: str
    status: CheckStatus
    severity: Severity
    message: str
    affected_kpis: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_type": self.check_type,
            "status": self.status.value,
            "severity": self.severity.value,
            "message": self.message,
            "affected_kpis": list(self.affected_kpis),
            "details": dict(self.details),
        }


class BaseValidationCheck(ABC):
    """
    Contract for a single data-quality check.

    A check returns zero or one result.  Checks that only report problems
    return an empty sequence when the data is clean.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`run`.
    """

    check_type: str = ""

    @abstractmethod
    def run(self, context: ValidationContext) -> Sequence[CheckResult]:
        """Evaluate the check against *context*."""
