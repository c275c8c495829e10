from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from roster_doctor.config import (
    DEFAULT_CONFIG,
    ValidationConfig,
    config_from_mapping,
    load_config,
    starter_config_text,
)


class ConfigTests(unittest.TestCase):
    def test_no_path_means_defaults(self):
        self.assertIs(load_config(None), DEFAULT_CONFIG)
        self.assertEqual(DEFAULT_CONFIG.corun_conflict_min_shared, 2)
        self.assertEqual(DEFAULT_CONFIG.default_max_load_per_phase, 1)
        self.assertTrue(DEFAULT_CONFIG.check_corun_cycles)

    def test_starter_config_round_trips(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "roster-doctor.json"
            path.write_text(starter_config_text(), encoding="utf-8")
            self.assertEqual(load_config(path), DEFAULT_CONFIG)

    def test_flat_and_wrapped_payloads(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            flat = Path(tmpdir) / "flat.json"
            flat.write_text(json.dumps({"corun_conflict_min_shared": 1}), encoding="utf-8")
            self.assertEqual(load_config(flat), ValidationConfig(corun_conflict_min_shared=1))

            wrapped = Path(tmpdir) / "wrapped.json"
            wrapped.write_text(json.dumps({"validation": {"check_corun_cycles": False}}), encoding="utf-8")
            self.assertFalse(load_config(wrapped).check_corun_cycles)

    def test_yaml_is_rejected_honestly(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yml"
            path.write_text("validation: {}\n", encoding="utf-8")
            with self.assertRaisesRegex(ValueError, "YAML configs are not supported yet"):
                load_config(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(Path("/nonexistent/roster-doctor.json"))

    def test_unknown_keys_and_bad_types(self):
        with self.assertRaisesRegex(ValueError, "Unknown config keys: colour"):
            config_from_mapping({"colour": "blue"})
        with self.assertRaisesRegex(ValueError, "must be an integer"):
            config_from_mapping({"corun_conflict_min_shared": "2"})
        with self.assertRaisesRegex(ValueError, "must be true or false"):
            config_from_mapping({"check_corun_cycles": 1})
        with self.assertRaisesRegex(ValueError, "at least 1"):
            config_from_mapping({"corun_conflict_min_shared": 0})

    def test_non_object_root_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaisesRegex(ValueError, "JSON object"):
                load_config(path)


if __name__ == "__main__":
    unittest.main()
