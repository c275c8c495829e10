from __future__ import annotations

import unittest

from roster_doctor.config import ValidationConfig
from roster_doctor.models import Client, Rule, RuleType, Task, Worker
from roster_doctor.validators import validate_relationships, validate_rule_conflicts
from roster_doctor.validators.relationships import phase_capacity, phase_demand


class RelationshipTests(unittest.TestCase):
    def test_client_group_without_tasks_is_orphaned(self):
        clients = [Client("C1", "Acme", group_tag="enterprise"), Client("C2", "Beta", group_tag="startup")]
        tasks = [Task("T1", "Build", "C1")]
        findings = validate_relationships(clients, [], tasks)
        self.assertEqual([finding.code for finding in findings], ["group_orphaned"])
        self.assertEqual(findings[0].row, 1)
        self.assertEqual(findings[0].message, 'Client group "startup" has no associated tasks')
        self.assertEqual(findings[0].type, "warning")

    def test_client_without_group_is_never_orphaned(self):
        self.assertEqual(validate_relationships([Client("C1", "Acme")], [], []), [])

    def test_phase_capacity_and_demand(self):
        workers = [
            Worker("W1", "Ada", available_slots=[1, 2], max_load_per_phase=2),
            Worker("W2", "Bob", available_slots=[2], max_load_per_phase=None),
        ]
        tasks = [
            Task("T1", "a", "C1", duration=3, preferred_phases=[1, 2]),
            Task("T2", "b", "C1", duration=1, preferred_phases=[2]),
        ]
        self.assertEqual(phase_capacity(workers, default_load=1), {1: 2, 2: 3})
        self.assertEqual(phase_demand(tasks), {1: 3, 2: 4})

    def test_overloaded_phase_is_reported_once(self):
        workers = [Worker("W1", "Ada", available_slots=[1, 2], max_load_per_phase=2)]
        tasks = [
            Task("T1", "a", "C1", duration=3, preferred_phases=[1]),
            Task("T2", "b", "C1", duration=2, preferred_phases=[2]),
        ]
        findings = validate_relationships([], workers, tasks)
        self.assertEqual([finding.id for finding in findings], ["phase-1-overload"])
        self.assertEqual(findings[0].entity, "phases")
        self.assertEqual(findings[0].message, "Phase 1 overloaded: 3h demand vs 2h capacity")

    def test_default_max_load_comes_from_config(self):
        workers = [Worker("W1", "Ada", available_slots=[1], max_load_per_phase=None)]
        tasks = [Task("T1", "a", "C1", duration=3, preferred_phases=[1])]
        self.assertEqual(len(validate_relationships([], workers, tasks)), 1)
        relaxed = ValidationConfig(default_max_load_per_phase=3)
        self.assertEqual(validate_relationships([], workers, tasks, relaxed), [])


class RuleConflictTests(unittest.TestCase):
    def test_corun_and_exclusion_sharing_two_tasks_conflict(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2", "T3"]),
            Rule("R2", RuleType.EXCLUSION, tasks=["T2", "T1"]),
        ]
        findings = validate_rule_conflicts(rules)
        self.assertEqual([finding.code for finding in findings], ["rule_corun_exclusion_conflict"])
        self.assertEqual(findings[0].id, "rule-conflict-0-1")
        self.assertEqual(findings[0].message, "Conflicting rules: co-run 'R1' and exclusion 'R2' for tasks T1, T2")

    def test_single_shared_task_is_not_a_conflict_by_default(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2"]),
            Rule("R2", RuleType.EXCLUSION, tasks=["T1", "T3"]),
        ]
        self.assertEqual(validate_rule_conflicts(rules), [])
        strict = ValidationConfig(corun_conflict_min_shared=1)
        self.assertEqual(len(validate_rule_conflicts(rules, strict)), 1)

    def test_inactive_rules_are_ignored(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2"]),
            Rule("R2", RuleType.EXCLUSION, tasks=["T1", "T2"], active=False),
        ]
        self.assertEqual(validate_rule_conflicts(rules), [])

    def test_duplicate_precedence_priorities(self):
        rules = [
            Rule("R1", RuleType.PRECEDENCE_OVERRIDE, priority=1),
            Rule("R2", RuleType.PRECEDENCE_OVERRIDE, priority=2),
            Rule("R3", RuleType.PRECEDENCE_OVERRIDE, priority=1),
            Rule("R4", RuleType.PRECEDENCE_OVERRIDE),
            Rule("R5", RuleType.PRECEDENCE_OVERRIDE),
        ]
        findings = validate_rule_conflicts(rules)
        self.assertEqual([finding.id for finding in findings], ["precedence-duplicate-priorities"])
        self.assertEqual(findings[0].message, "Duplicate precedence priorities: 1")

    def test_overlapping_corun_groups_in_opposite_order_form_a_cycle(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2"]),
            Rule("R2", RuleType.CO_RUN, tasks=["T2", "T1"]),
        ]
        findings = validate_rule_conflicts(rules)
        self.assertEqual([finding.id for finding in findings], ["corun-cycle-0", "corun-cycle-1"])
        self.assertIn("T1 -> T2 -> T1", findings[0].message)

    def test_corun_cycle_check_can_be_disabled(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2"]),
            Rule("R2", RuleType.CO_RUN, tasks=["T2", "T1"]),
        ]
        self.assertEqual(validate_rule_conflicts(rules, ValidationConfig(check_corun_cycles=False)), [])

    def test_chained_corun_groups_without_loop_are_fine(self):
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["T1", "T2"]),
            Rule("R2", RuleType.CO_RUN, tasks=["T2", "T3"]),
        ]
        self.assertEqual(validate_rule_conflicts(rules), [])

    def test_loop_of_groups_that_agree_on_order_is_not_a_cycle(self):
        # A before B, B before C, A before C: every edge points forward.
        rules = [
            Rule("R1", RuleType.CO_RUN, tasks=["A", "B"]),
            Rule("R2", RuleType.CO_RUN, tasks=["B", "C"]),
            Rule("R3", RuleType.CO_RUN, tasks=["A", "C"]),
        ]
        self.assertEqual(validate_rule_conflicts(rules), [])

    def test_phase_window_sharing_a_task_with_exclusion_warns(self):
        rules = [
            Rule("R1", RuleType.PHASE_WINDOW, tasks=["T1", "T2"], phases=[1, 2]),
            Rule("R2", RuleType.EXCLUSION, tasks=["T2", "T3"]),
        ]
        findings = validate_rule_conflicts(rules)
        self.assertEqual([finding.code for finding in findings], ["rule_phase_window_exclusion"])
        self.assertEqual(findings[0].id, "rule-window-0-1")
        self.assertEqual(findings[0].row, 0)
        self.assertEqual(findings[0].type, "warning")
        self.assertFalse(findings[0].auto_fixable)
        self.assertEqual(findings[0].message, "Conflicting rules: phase-window 'R1' and exclusion 'R2' for tasks T2")

    def test_phase_window_without_overlap_or_inactive_is_quiet(self):
        rules = [
            Rule("R1", RuleType.PHASE_WINDOW, tasks=["T1"], phases=[1]),
            Rule("R2", RuleType.EXCLUSION, tasks=["T2", "T3"]),
            Rule("R3", RuleType.PHASE_WINDOW, tasks=["T2"], phases=[2], active=False),
        ]
        self.assertEqual(validate_rule_conflicts(rules), [])


if __name__ == "__main__":
    unittest.main()
