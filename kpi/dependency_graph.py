"""
kpi/dependency_graph.py

Evaluation order for KPI rules.

Rule A depends on rule B when A's formula references B's metric code.
References to codes without a rule (mapped metrics) and self references are
not edges: they read whatever value is already in the working series.
"""

from __future__ import annotations

import heapq
from typing import Iterable, Mapping


class DependencyCycleError(ValueError):
    """Raised when rule dependencies form a cycle."""

    def __init__(self, metric_codes: Iterable[str]) -> None:
        self.metric_codes = sorted(metric_codes)
        super().__init__(
            "KPI rule dependency cycle detected between: " + ", ".join(self.metric_codes)
        )


def evaluation_order(references: Mapping[str, Iterable[str]]) -> list[str]:
    """
    Topologically sort rule metric codes, breaking ties lexicographically.

    Parameters
    ----------
    references:
        ``metric_code -> metric codes read by that rule's formula``.

    Returns
    -------
    list[str]
        Metric codes such that every rule follows the rules it reads.  With
        no dependencies this is plain lexicographic order.

    Raises
    ------
    DependencyCycleError
        When the rules cannot be ordered.  The error names every code left
        on a cycle (or downstream of one).
    """
    dependents: dict[str, set[str]] = {code: set() for code in references}
    in_degree: dict[str, int] = {code: 0 for code in references}

    for code, reads in references.items():
        for dependency in set(reads):
            if dependency == code or dependency not in references:
                continue
            dependents[dependency].add(code)
            in_degree[code] += 1

    ready = [code for code, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        code = heapq.heappop(ready)
        order.append(code)
        for dependent in dependents[code]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) != len(references):
        raise DependencyCycleError(code for code, degree in in_degree.items() if degree > 0)
    return order
