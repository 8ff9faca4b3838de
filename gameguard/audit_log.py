"""
Append-only audit log of enforcement events.

WHY: Users of a self-control tool want to see what was closed and when, and
why something was not closed. Each event is one JSON object per line in
log.jsonl so the file stays greppable and survives partial writes.
"""

import json
import logging
import threading
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .common import get_data_directory

AUDIT_LOG_FILE_NAME = "log.jsonl"


class AuditEvent(str, Enum):
    """Event kinds written to the audit log."""

    BLOCKED_DETECTED = "blocked_detected"
    GRACE_STARTED = "grace_started"
    GRACE_CANCELLED = "grace_cancelled"
    TERMINATED_SUCCESS = "terminated_success"
    TERMINATE_SKIPPED = "terminate_skipped"
    TERMINATED_FAILED = "terminated_failed"
    VERIFY_FAILED = "verify_failed"
    MONITOR_ERROR = "monitor_error"
    TICK_ERROR = "tick_error"
    MONITOR_STARTED = "monitor_started"
    MONITOR_STOPPED = "monitor_stopped"
    CONFIG_CHANGED = "config_changed"
    CONFIG_LOAD_FAILED = "config_load_failed"


class AuditLog:
    """
    Thread-safe JSON-lines writer.

    USAGE:
        audit = AuditLog(data_dir)
        audit.log(AuditEvent.TERMINATED_SUCCESS, "steam.exe", "pid=4242")
    """

    def __init__(self, data_dir: Optional[Path] = None, logger: Optional[logging.Logger] = None):
        self.log_directory = Path(data_dir or get_data_directory())
        self.log_path = self.log_directory / AUDIT_LOG_FILE_NAME
        self._write_lock = threading.Lock()
        self._logger = logger or logging.getLogger(__name__)

    def log(
        self,
        event: AuditEvent | str,
        process_name: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Append one event and return the record that was written.

        Write failures are reported through the application logger and never
        raised: the engine must keep running with a full disk.
        """
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "event": event.value if isinstance(event, AuditEvent) else str(event),
            "process": process_name,
            "detail": detail,
        }
        line = json.dumps(entry, ensure_ascii=False)

        with self._write_lock:
            try:
                self.log_directory.mkdir(parents=True, exist_ok=True)
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                self._logger.error("Failed to write audit event %s: %s", entry["event"], e)

        self._logger.debug("audit %s | %s | %s", entry["event"], process_name, detail)
        return entry

    def read_recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Return the last `limit` well-formed events (oldest first)."""
        if not self.log_path.exists():
            return []

        events = []
        with self._write_lock:
            with open(self.log_path, "r", encoding="utf-8", errors="replace") as f:
                lines = f.readlines()

        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(record, dict) and "event" in record:
                events.append(record)

        return events[-limit:] if limit > 0 else events
