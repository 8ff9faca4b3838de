"""
Tests for the JSON-lines audit log.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from gameguard.audit_log import AUDIT_LOG_FILE_NAME, AuditEvent, AuditLog


class TestAuditLog(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.audit = AuditLog(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_writes_one_json_object_per_line(self):
        self.audit.log(AuditEvent.TERMINATED_SUCCESS, "steam.exe", "pid=4242")
        self.audit.log(AuditEvent.CONFIG_CHANGED)

        lines = (self.temp_dir / AUDIT_LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 2)
        first = json.loads(lines[0])
        self.assertEqual(first["event"], "terminated_success")
        self.assertEqual(first["process"], "steam.exe")
        self.assertEqual(first["detail"], "pid=4242")
        self.assertIn("timestamp", first)
        self.assertIsNone(json.loads(lines[1])["process"])

    def test_creates_missing_directory(self):
        nested = self.temp_dir / "a" / "b"
        AuditLog(nested).log(AuditEvent.MONITOR_STARTED)
        self.assertTrue((nested / AUDIT_LOG_FILE_NAME).exists())

    def test_read_recent_orders_and_limits(self):
        for pid in range(5):
            self.audit.log(AuditEvent.BLOCKED_DETECTED, "app.exe", f"pid={pid}")

        recent = self.audit.read_recent(limit=2)
        self.assertEqual([e["detail"] for e in recent], ["pid=3", "pid=4"])
        self.assertEqual(len(self.audit.read_recent(limit=0)), 5)

    def test_read_recent_skips_corrupt_lines(self):
        self.audit.log(AuditEvent.MONITOR_STARTED)
        with open(self.temp_dir / AUDIT_LOG_FILE_NAME, "a", encoding="utf-8") as f:
            f.write("{not json\n\n[1, 2]\n")
        self.audit.log(AuditEvent.MONITOR_STOPPED)

        events = [e["event"] for e in self.audit.read_recent(limit=0)]
        self.assertEqual(events, ["monitor_started", "monitor_stopped"])

    def test_read_recent_without_file(self):
        self.assertEqual(self.audit.read_recent(), [])

    def test_write_failure_is_not_raised(self):
        with patch("builtins.open", side_effect=OSError("disk full")):
            entry = self.audit.log(AuditEvent.MONITOR_ERROR, None, "x")
        self.assertEqual(entry["event"], "monitor_error")

    def test_accepts_plain_string_event(self):
        entry = self.audit.log("custom_event")
        self.assertEqual(entry["event"], "custom_event")


if __name__ == "__main__":
    unittest.main()
