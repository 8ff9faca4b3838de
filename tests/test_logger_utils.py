import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from gameguard.logger_utils import (
    ERROR_LOG_FILE_NAME,
    LOG_FILE_NAME,
    _create_event_log_handler,
    get_logger,
)
from tests.test_utils import release_logger


class TestLoggerUtils(unittest.TestCase):
    def test_error_log_contains_stack_when_no_exception(self):
        name = "test_error_log_contains_stack_when_no_exception"
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir)
            logger = get_logger(name, data_dir=data_dir)
            logger.error("Problem encountered")
            release_logger(name)

            error_log = (data_dir / ERROR_LOG_FILE_NAME).read_text(encoding="utf-8")

            self.assertIn("Problem encountered", error_log)
            self.assertIn(name, error_log)
            self.assertIn("Stack (most recent call last)", error_log)
            self.assertIn("test_error_log_contains_stack_when_no_exception", error_log)

    def test_error_log_records_traceback_from_exception(self):
        name = "test_error_log_records_traceback_from_exception"
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir)
            logger = get_logger(name, data_dir=data_dir)
            try:
                raise ValueError("boom")
            except ValueError:
                logger.exception("Encountered exception")
            release_logger(name)

            error_log = (data_dir / ERROR_LOG_FILE_NAME).read_text(encoding="utf-8")

            self.assertIn("Encountered exception", error_log)
            self.assertIn("ValueError: boom", error_log)
            self.assertIn("Traceback", error_log)

    def test_error_inside_except_block_keeps_traceback(self):
        name = "test_error_inside_except_block_keeps_traceback"
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir)
            logger = get_logger(name, data_dir=data_dir)
            try:
                raise KeyError("rule")
            except KeyError:
                logger.error("Rule lookup failed")
            release_logger(name)

            error_log = (data_dir / ERROR_LOG_FILE_NAME).read_text(encoding="utf-8")
            self.assertIn("KeyError", error_log)
            self.assertNotIn("Stack (most recent call last)", error_log)

    def test_info_not_written_to_error_log(self):
        name = "test_info_not_written_to_error_log"
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir)
            logger = get_logger(name, data_dir=data_dir)
            logger.info("Scheduler started")
            release_logger(name)

            self.assertIn("Scheduler started", (data_dir / LOG_FILE_NAME).read_text(encoding="utf-8"))
            error_log = data_dir / ERROR_LOG_FILE_NAME
            self.assertEqual(error_log.read_text(encoding="utf-8") if error_log.exists() else "", "")

    def test_child_loggers_reach_file(self):
        name = "test_child_loggers_reach_file"
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir)
            get_logger(name, data_dir=data_dir)

            logging.getLogger(f"{name}.engine").warning("Cannot close Steam")
            release_logger(name)

            lines = (data_dir / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
            self.assertTrue(lines[-1].endswith(f"| WARNING | {name}.engine | Cannot close Steam"))

    def test_development_mode_enables_debug(self):
        name = "test_development_mode_enables_debug"
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch.dict(os.environ, {"GAMEGUARD_ENV": "DEVELOPMENT"}):
                logger = get_logger(name, data_dir=Path(tmpdir))
            try:
                self.assertTrue(logger.isEnabledFor(logging.DEBUG))
            finally:
                release_logger(name)

    def test_event_log_handler_unavailable_without_pywin32(self):
        with patch.dict(sys.modules, {"win32evtlogutil": None, "win32con": None}):
            self.assertIsNone(_create_event_log_handler())

    def test_event_log_handler_reports_warnings_and_errors(self):
        evtlogutil = MagicMock()
        win32con = MagicMock(EVENTLOG_WARNING_TYPE=2, EVENTLOG_ERROR_TYPE=1)
        with patch.dict(sys.modules, {"win32evtlogutil": evtlogutil, "win32con": win32con}):
            handler = _create_event_log_handler()

        name = "test_event_log_handler_reports_warnings_and_errors"
        logger = logging.getLogger(name)
        logger.addHandler(handler)
        logger.propagate = False
        try:
            logger.info("Scheduler started")
            logger.warning("Cannot close Steam")
            logger.error("config.json could not be loaded")
        finally:
            release_logger(name)

        event_types = [call.kwargs["eventType"] for call in evtlogutil.ReportEvent.call_args_list]
        self.assertEqual(event_types, [2, 1])
        self.assertIn("Cannot close Steam", evtlogutil.ReportEvent.call_args_list[0].kwargs["strings"][0])


if __name__ == "__main__":
    unittest.main()
