"""Tests for the discovery run report writer."""

import json
import tempfile
import unittest
from pathlib import Path

from core.run_artifacts import discovery_status, write_run_report


class TestRunArtifacts(unittest.TestCase):
    def test_write_run_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_run_report(
                report={"files_processed": 3, "files_failed": 0, "definitions_found": 12},
                run_id="run-123",
                output_dir=tmpdir,
            )
            self.assertEqual(Path(path).name, "discovery-run-123.json")
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
            self.assertEqual(payload["run_id"], "run-123")
            self.assertEqual(payload["status"], "success")
            self.assertEqual(payload["definitions_found"], 12)
            self.assertIn("timestamp_utc", payload)

    def test_creates_output_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "nested" / "reports"
            path = write_run_report({}, "run-456", output_dir=str(target))
            self.assertTrue(Path(path).is_file())


class TestDiscoveryStatus(unittest.TestCase):
    def test_statuses(self) -> None:
        self.assertEqual(discovery_status({"files_processed": 2, "definitions_found": 4}), "success")
        self.assertEqual(discovery_status({"files_processed": 2, "definitions_found": 0}), "empty")
        self.assertEqual(
            discovery_status({"files_processed": 2, "files_failed": 1, "definitions_found": 4}),
            "partial",
        )
        self.assertEqual(discovery_status({"files_processed": 0, "files_failed": 3}), "failed")


if __name__ == "__main__":
    unittest.main()
