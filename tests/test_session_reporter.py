import csv
import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from session_reporter import SESSION_FIELDNAMES, SessionReporter


class TestSessionReporter(unittest.TestCase):
    def test_save_session_writes_json_and_csv(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = SessionReporter(Path(tmpdir))
            reporter.save_session({"frames": np.int64(12), "peaks": 2, "energy_mean": np.float64(0.25)})

            with open(reporter.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            self.assertEqual(payload["session_count"], 1)
            self.assertEqual(payload["latest"]["frames"], 12)
            self.assertEqual(payload["latest"]["energy_mean"], 0.25)

            with open(reporter.csv_path, "r", newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))
            self.assertEqual(len(rows), 1)
            self.assertEqual(list(rows[0].keys()), SESSION_FIELDNAMES)
            self.assertEqual(rows[0]["peaks"], "2")

    def test_sessions_accumulate_and_are_capped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            for i in range(5):
                SessionReporter(Path(tmpdir), max_sessions=3).save_session({"frames": i})

            with open(Path(tmpdir) / "session_report.json", "r", encoding="utf-8") as f:
                payload = json.load(f)
            self.assertEqual([s["frames"] for s in payload["sessions"]], [2, 3, 4])

    def test_unreadable_report_starts_over(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = SessionReporter(Path(tmpdir))
            with open(reporter.json_path, "w", encoding="utf-8") as f:
                f.write("not json")
            reporter.save_session({"frames": 1})

            with open(reporter.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            self.assertEqual(payload["session_count"], 1)


if __name__ == "__main__":
    unittest.main()
