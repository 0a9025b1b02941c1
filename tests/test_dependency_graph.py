from __future__ import annotations

import unittest

from kpi.dependency_graph import DependencyCycleError, evaluation_order


class TestEvaluationOrder(unittest.TestCase):
    def test_independent_rules_run_in_lexicographic_order(self) -> None:
        order = evaluation_order({"b": ["x"], "a": ["y"], "c": []})
        self.assertEqual(order, ["a", "b", "c"])

    def test_dependency_runs_first(self) -> None:
        # "a.intensity" reads "z.total", which is itself a rule.
        order = evaluation_order({"a.intensity": ["z.total", "headcount"], "z.total": ["scope1"]})
        self.assertEqual(order, ["z.total", "a.intensity"])

    def test_ties_after_dependencies_are_lexicographic(self) -> None:
        order = evaluation_order({"d": ["a"], "c": ["a"], "a": [], "b": []})
        self.assertEqual(order, ["a", "b", "c", "d"])

    def test_self_reference_is_not_an_edge(self) -> None:
        order = evaluation_order({"E1-1.scope1": ["E1-1.scope1"]})
        self.assertEqual(order, ["E1-1.scope1"])

    def test_cycle_names_the_metric_codes(self) -> None:
        with self.assertRaises(DependencyCycleError) as ctx:
            evaluation_order({"a": ["b"], "b": ["a"], "c": []})

        self.assertEqual(ctx.exception.metric_codes, ["a", "b"])
        self.assertIn("a, b", str(ctx.exception))

    def test_empty_rule_set(self) -> None:
        self.assertEqual(evaluation_order({}), [])
