from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

import pandas as pd
from openpyxl import Workbook

from roster_doctor.loader import (
    _read_text_safely,
    load_dataset,
    load_entity_file,
    load_rules,
    load_table,
    normalize_records,
    parse_rules,
)
from roster_doctor.models import Client, RuleType, Task

REPO_ROOT = Path(__file__).resolve().parents[1]
SAMPLE_DIR = REPO_ROOT / "sample-data"


class LoadTableTests(unittest.TestCase):
    def test_semicolon_delimited_csv_is_sniffed(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "clients.csv"
            path.write_text("ClientID;ClientName\nC1;Acme\nC2;Beta\n", encoding="utf-8")
            result = load_table(path)
            self.assertEqual(result["delimiter"], ";")
            self.assertEqual(list(result["dataframe"].columns), ["ClientID", "ClientName"])
            self.assertEqual(len(result["dataframe"]), 2)

    def test_mixed_encodings_are_decoded_line_by_line(self):
        raw = "WorkerID,WorkerName\nW1,Zoë Ng\n".encode("utf-8") + "W2,Jos\xe9 Mart\xednez\n".encode("latin-1")
        text = _read_text_safely(raw, "unknown")
        self.assertEqual(text.splitlines()[1:], ["W1,Zoë Ng", "W2,José Martínez"])

    def test_bom_and_null_bytes_are_stripped(self):
        raw = "\ufeffTaskID,TaskName\nT1,Bu\x00ild\n".encode("utf-8")
        self.assertEqual(_read_text_safely(raw, "utf-8"), "TaskID,TaskName\nT1,Build\n")

    def test_xlsx_reads_first_sheet_and_warns_about_others(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "tasks.xlsx"
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = "Tasks"
            sheet.append(["TaskID", "TaskName", "ClientID", "Duration"])
            sheet.append(["T1", "Build", "C1", 2])
            workbook.create_sheet("Notes").append(["ignore me"])
            workbook.save(path)

            result = load_table(path)
            self.assertEqual(result["sheet_name"], "Tasks")
            self.assertEqual(result["sheet_names"], ["Tasks", "Notes"])
            self.assertIn("using the first one", result["warnings"][0])

            picked = load_table(path, sheet_name="Notes")
            self.assertEqual(picked["sheet_name"], "Notes")

            with self.assertRaisesRegex(ValueError, "not found"):
                load_table(path, sheet_name="Missing")

    def test_corrupt_workbook_raises_value_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.xlsx"
            path.write_bytes(b"this is not a zip archive")
            with self.assertRaisesRegex(ValueError, "Could not open workbook"):
                load_table(path)

    def test_unsupported_and_missing_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "clients.pdf"
            path.write_bytes(b"%PDF")
            with self.assertRaisesRegex(ValueError, "Unsupported file type"):
                load_table(path)
            with self.assertRaises(FileNotFoundError):
                load_table(Path(tmpdir) / "nope.csv")

    def test_empty_file_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "clients.csv"
            path.write_text("", encoding="utf-8")
            with self.assertRaisesRegex(ValueError, "is empty"):
                load_table(path)


class NormalizeRecordsTests(unittest.TestCase):
    def test_header_aliases_and_value_coercion(self):
        frame = pd.DataFrame(
            [
                {
                    "Client ID": "C1",
                    "client_name": "Acme",
                    "Priority-Level": "4",
                    "Requested Task IDs": "[T1, T2]",
                    "Group Tag": "enterprise",
                    "AttributesJSON": '{"tier": "gold"}',
                    "Phases": "1-3",
                }
            ],
            dtype=str,
        )
        result = normalize_records(frame, "clients")
        self.assertEqual(
            result["records"],
            [
                Client(
                    id="C1",
                    name="Acme",
                    priority=4,
                    budget=None,
                    requested_task_ids=["T1", "T2"],
                    group_tag="enterprise",
                    attributes_json='{"tier": "gold"}',
                    phases=[1, 2, 3],
                )
            ],
        )
        self.assertEqual(result["column_mapping"]["id"], "Client ID")
        self.assertEqual(result["warnings"], [])

    def test_blank_cells_take_schema_defaults(self):
        frame = pd.DataFrame([{"TaskID": "T1", "TaskName": "Build", "ClientID": "C1", "Duration": "", "MaxConcurrent": ""}], dtype=str)
        task = normalize_records(frame, "tasks")["records"][0]
        self.assertEqual(task.duration, 1)
        self.assertEqual(task.max_concurrent, 1)
        self.assertEqual(task.priority, 1)
        self.assertEqual(task.required_skills, [])

    def test_unparseable_numbers_become_none_with_warning(self):
        frame = pd.DataFrame([{"WorkerID": "W1", "WorkerName": "Ada", "MaxLoadPerPhase": "lots"}], dtype=str)
        result = normalize_records(frame, "workers")
        self.assertIsNone(result["records"][0].max_load_per_phase)
        self.assertTrue(any("max_load_per_phase" in warning for warning in result["warnings"]))

    def test_out_of_domain_values_are_kept_for_the_validators(self):
        frame = pd.DataFrame([{"TaskID": "T1", "TaskName": "x", "ClientID": "C1", "Duration": "0", "PreferredPhases": "0,4,12"}], dtype=str)
        task = normalize_records(frame, "tasks")["records"][0]
        self.assertEqual(task.duration, 0)
        self.assertEqual(task.preferred_phases, [0, 4, 12])

    def test_unknown_and_duplicate_columns_are_reported(self):
        frame = pd.DataFrame([["W1", "W9", "Ada", "x"]], columns=["WorkerID", "worker_id", "WorkerName", "Shoe Size"], dtype=str)
        result = normalize_records(frame, "workers")
        self.assertEqual(result["records"][0].id, "W1")
        joined = " | ".join(result["warnings"])
        self.assertIn("both map to id", joined)
        self.assertIn("Ignored unrecognised columns: Shoe Size", joined)

    def test_missing_required_columns_and_empty_rows(self):
        frame = pd.DataFrame([{"TaskName": "Build"}, {"TaskName": ""}], dtype=str)
        result = normalize_records(frame, "tasks")
        self.assertEqual(len(result["records"]), 1)
        self.assertEqual(result["records"][0], Task(id="", name="Build", client_id=""))
        joined = " | ".join(result["warnings"])
        self.assertIn("No column found for required field 'id'", joined)
        self.assertIn("Skipped 1 empty row(s)", joined)

    def test_unknown_entity_is_rejected(self):
        with self.assertRaises(ValueError):
            normalize_records(pd.DataFrame(), "projects")


class RulesLoaderTests(unittest.TestCase):
    def test_camel_and_snake_case_rules(self):
        rules = parse_rules(
            [
                {"id": "R1", "type": "coRun", "taskIds": "T1, T2", "weight": "2.5"},
                {"type": "precedence_override", "priority": 3, "active": "no", "owner": "ops"},
            ]
        )
        self.assertEqual(rules[0].type, RuleType.CO_RUN)
        self.assertEqual(rules[0].tasks, ["T1", "T2"])
        self.assertEqual(rules[0].weight, 2.5)
        self.assertEqual(rules[1].id, "rule-2")
        self.assertEqual(rules[1].type, RuleType.PRECEDENCE_OVERRIDE)
        self.assertEqual(rules[1].priority, 3)
        self.assertFalse(rules[1].active)
        self.assertEqual(rules[1].parameters, {"owner": "ops"})

    def test_unknown_rule_type_raises(self):
        with self.assertRaisesRegex(ValueError, "Unknown rule type 'teleport'"):
            parse_rules([{"id": "R1", "type": "teleport"}])

    def test_rule_without_type_raises(self):
        with self.assertRaisesRegex(ValueError, "missing a type"):
            parse_rules([{"id": "R1"}])

    def test_wrong_root_shape_raises(self):
        with self.assertRaises(ValueError):
            parse_rules({"id": "R1"})

    def test_load_rules_reads_wrapped_list_and_rejects_bad_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rules.json"
            path.write_text(json.dumps({"rules": [{"id": "R1", "type": "exclusion", "tasks": ["A", "B"]}]}), encoding="utf-8")
            self.assertEqual(load_rules(path)[0].type, RuleType.EXCLUSION)

            path.write_text("{not json", encoding="utf-8")
            with self.assertRaisesRegex(ValueError, "not valid JSON"):
                load_rules(path)


class LoadDatasetTests(unittest.TestCase):
    def test_bundled_sample_data_loads(self):
        result = load_dataset(
            clients=SAMPLE_DIR / "clients.csv",
            workers=SAMPLE_DIR / "workers.csv",
            tasks=SAMPLE_DIR / "tasks.csv",
            rules=SAMPLE_DIR / "rules.json",
        )
        dataset = result["dataset"]
        self.assertEqual(dataset.counts(), {"clients": 3, "workers": 3, "tasks": 3, "rules": 4})
        self.assertEqual(dataset.clients[1].priority, 8)
        self.assertEqual(dataset.clients[2].id, "")
        self.assertEqual(dataset.workers[1].available_slots, [1, 2, 14])
        self.assertEqual(dataset.tasks[0].preferred_phases, [1, 2])
        self.assertEqual(dataset.tasks[2].required_skills, ["linux", "kubernetes"])
        self.assertTrue(any(warning.startswith("clients: Ignored unrecognised columns") for warning in result["warnings"]))

    def test_missing_tables_are_empty_collections(self):
        result = load_dataset(clients=SAMPLE_DIR / "clients.csv")
        self.assertEqual(result["dataset"].workers, [])
        self.assertIsNone(result["inputs"]["tasks"])

    def test_load_entity_file_reports_format(self):
        result = load_entity_file(SAMPLE_DIR / "tasks.csv", "tasks")
        self.assertEqual(result["detected_format"], "csv")
        self.assertEqual([task.id for task in result["records"]], ["T1", "T2", "T3"])


if __name__ == "__main__":
    unittest.main()
