from __future__ import annotations

import copy
import unittest

from roster_doctor import validate_all, validate_dataset
from roster_doctor.findings import FINDING_DEFINITIONS, summarize
from roster_doctor.models import Client, Dataset, Rule, RuleType, Task, Worker
from roster_doctor.samples import messy_sample_dataset, sample_dataset

ENTITY_ORDER = {"clients": 0, "workers": 1, "tasks": 2, "phases": 3, "rules": 4}


class ValidateAllTests(unittest.TestCase):
    def test_empty_input_has_no_findings(self):
        self.assertEqual(validate_all([], [], [], []), [])

    def test_clean_sample_validates_clean(self):
        findings = validate_dataset(sample_dataset())
        self.assertEqual(findings, [], [finding.message for finding in findings])
        self.assertEqual(summarize(findings)["verdict"], "CLEAN")

    def test_messy_sample_covers_every_finding_code(self):
        found = {finding.code for finding in validate_dataset(messy_sample_dataset())}
        self.assertEqual(found, set(FINDING_DEFINITIONS))

    def test_validation_is_deterministic(self):
        dataset = messy_sample_dataset()
        first = [finding.to_dict() for finding in validate_dataset(dataset)]
        second = [finding.to_dict() for finding in validate_dataset(dataset)]
        self.assertEqual(first, second)

    def test_inputs_are_not_mutated(self):
        dataset = messy_sample_dataset()
        snapshot = copy.deepcopy(dataset)
        validate_dataset(dataset)
        self.assertEqual(dataset, snapshot)

    def test_findings_come_grouped_in_validator_order(self):
        findings = validate_dataset(messy_sample_dataset())
        positions = [ENTITY_ORDER[finding.entity] for finding in findings]
        # Orphaned groups are cross-table but anchored to client rows.
        relationship_start = next(index for index, finding in enumerate(findings) if finding.code == "group_orphaned")
        self.assertEqual(positions[:relationship_start], sorted(positions[:relationship_start]))
        tail = [finding.entity for finding in findings[relationship_start:]]
        self.assertEqual(tail, sorted(tail, key=lambda entity: entity == "rules"))

    def test_auto_fixable_findings_always_carry_a_fix(self):
        for finding in validate_dataset(messy_sample_dataset()):
            if finding.auto_fixable:
                self.assertIsNotNone(finding.suggested_fix, finding.id)
                self.assertIsNotNone(finding.row, finding.id)
                self.assertIsNotNone(finding.column, finding.id)

    def test_type_and_severity_follow_the_taxonomy(self):
        for finding in validate_dataset(messy_sample_dataset()):
            definition = FINDING_DEFINITIONS[finding.code]
            self.assertEqual(finding.type, definition["type"], finding.code)
            self.assertEqual(finding.severity, definition["severity"], finding.code)
            self.assertEqual(finding.field, definition["field"], finding.code)

    def test_finding_ids_are_unique_within_a_run(self):
        findings = validate_dataset(messy_sample_dataset())
        ids = [finding.id for finding in findings]
        self.assertEqual(len(ids), len(set(ids)))

    def test_cross_table_overload_without_row_findings(self):
        clients = [Client("C1", "Acme", requested_task_ids=["T1"])]
        workers = [Worker("W1", "Ada", skills=["python"], available_slots=[1], max_load_per_phase=1)]
        tasks = [Task("T1", "Build", "C1", required_skills=["python"], preferred_phases=[1], duration=4)]
        rules = [Rule("R1", RuleType.CO_RUN, tasks=["T1"])]
        findings = validate_all(clients, workers, tasks, rules)
        self.assertEqual([finding.code for finding in findings], ["phase_overload"])

    def test_validate_dataset_matches_validate_all(self):
        dataset = messy_sample_dataset()
        self.assertEqual(
            validate_dataset(dataset),
            validate_all(dataset.clients, dataset.workers, dataset.tasks, dataset.rules),
        )

    def test_dataset_counts(self):
        self.assertEqual(sample_dataset().counts(), {"clients": 3, "workers": 4, "tasks": 8, "rules": 6})
        self.assertEqual(Dataset().counts(), {"clients": 0, "workers": 0, "tasks": 0, "rules": 0})


if __name__ == "__main__":
    unittest.main()
