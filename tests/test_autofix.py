from __future__ import annotations

import copy
import unittest

from roster_doctor.autofix import apply_fixes, fix_until_stable
from roster_doctor.engine import validate_dataset
from roster_doctor.models import Client, Dataset, Finding, Task, Worker
from roster_doctor.samples import messy_sample_dataset, sample_dataset


def manual_finding(**overrides) -> Finding:
    payload = {
        "id": "client-0-priority-range",
        "type": "warning",
        "field": "priority",
        "message": "PriorityLevel 9 not in range 1-5",
        "code": "client_priority_range",
        "entity": "clients",
        "row": 0,
        "column": "priority",
        "suggested_fix": "5",
        "auto_fixable": True,
        "severity": "medium",
    }
    payload.update(overrides)
    return Finding(**payload)


class ApplyFixesTests(unittest.TestCase):
    def test_applies_fix_and_records_change(self):
        dataset = Dataset(clients=[Client("C1", "Acme", priority=9)])
        result = apply_fixes(dataset, validate_dataset(dataset))
        self.assertEqual(result["dataset"].clients[0].priority, 5)
        self.assertEqual(len(result["changes"]), 1)
        change = result["changes"][0]
        self.assertEqual(
            change.to_dict(),
            {
                "entity": "clients",
                "row": 0,
                "column": "priority",
                "old_value": "9",
                "new_value": "5",
                "finding_code": "client_priority_range",
                "reason": "PriorityLevel 9 not in range 1-5",
            },
        )
        self.assertEqual(result["warnings"], [])

    def test_input_dataset_is_left_untouched(self):
        dataset = messy_sample_dataset()
        snapshot = copy.deepcopy(dataset)
        apply_fixes(dataset, validate_dataset(dataset))
        self.assertEqual(dataset, snapshot)

    def test_list_fields_are_coerced_from_the_suggestion(self):
        dataset = Dataset(
            workers=[Worker("W1", "Ada", available_slots=[1, 2, 12], max_load_per_phase=1)],
            tasks=[Task("T1", "Build", preferred_phases=[0, 3])],
        )
        fixed = apply_fixes(dataset, validate_dataset(dataset))["dataset"]
        self.assertEqual(fixed.workers[0].available_slots, [1, 2])
        self.assertEqual(fixed.tasks[0].preferred_phases, [3])

    def test_non_fixable_findings_are_skipped(self):
        dataset = Dataset(clients=[Client("C1", "")])
        result = apply_fixes(dataset, validate_dataset(dataset))
        self.assertEqual(result["changes"], [])
        self.assertEqual(result["dataset"], dataset)

    def test_stale_row_is_reported_not_raised(self):
        dataset = Dataset(clients=[Client("C1", "Acme")])
        result = apply_fixes(dataset, [manual_finding(row=4)])
        self.assertEqual(result["changes"], [])
        self.assertIn("row 4 is out of range", result["warnings"][0])

    def test_uncoercible_suggestion_is_reported(self):
        dataset = Dataset(clients=[Client("C1", "Acme", priority=9)])
        result = apply_fixes(dataset, [manual_finding(suggested_fix="high")])
        self.assertEqual(result["changes"], [])
        self.assertIn("suggested fix not applied", result["warnings"][0])
        self.assertEqual(result["dataset"].clients[0].priority, 9)


class FixUntilStableTests(unittest.TestCase):
    def test_clean_dataset_needs_no_passes(self):
        result = fix_until_stable(sample_dataset())
        self.assertEqual(result["passes"], 0)
        self.assertEqual(result["changes"], [])
        self.assertEqual(result["findings"], [])

    def test_no_auto_fixable_findings_remain(self):
        result = fix_until_stable(messy_sample_dataset())
        self.assertGreater(len(result["changes"]), 0)
        self.assertFalse(any(finding.auto_fixable for finding in result["findings"]))
        self.assertEqual(result["findings"], validate_dataset(result["dataset"]))

    def test_fixing_twice_changes_nothing_more(self):
        once = fix_until_stable(messy_sample_dataset())
        twice = fix_until_stable(once["dataset"])
        self.assertEqual(twice["changes"], [])
        self.assertEqual(twice["dataset"], once["dataset"])

    def test_generated_ids_do_not_collide(self):
        dataset = Dataset(clients=[Client("client-002", "Acme"), Client("", "Beta"), Client("client-002", "Gamma")])
        fixed = fix_until_stable(dataset)["dataset"]
        ids = [client.id for client in fixed.clients]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertNotIn("", ids)

    def test_remaining_findings_need_manual_review(self):
        result = fix_until_stable(messy_sample_dataset())
        remaining = {finding.code for finding in result["findings"]}
        self.assertIn("client_missing_name", remaining)
        self.assertIn("task_circular_dependency", remaining)
        self.assertNotIn("client_priority_range", remaining)
        self.assertNotIn("worker_invalid_slots", remaining)


if __name__ == "__main__":
    unittest.main()
