"""
Tests for the non-overlapping poll scheduler.
"""
import shutil
import tempfile
import threading
import time
import unittest
from pathlib import Path

from gameguard.audit_log import AuditLog
from gameguard.scheduler import MIN_INTERVAL_SECONDS, PollScheduler
from tests.test_utils import read_audit_events


class TestPollScheduler(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.audit = AuditLog(self.temp_dir)
        self.scheduler = None

    def tearDown(self):
        if self.scheduler is not None:
            self.scheduler.stop(timeout=5)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_first_tick_runs_immediately(self):
        ticked = threading.Event()
        self.scheduler = PollScheduler(ticked.set, lambda: 60)
        self.scheduler.start()
        self.assertTrue(ticked.wait(5))
        self.assertTrue(self.scheduler.is_running)

    def test_next_tick_waits_interval_after_completion(self):
        calls = []
        second = threading.Event()

        def tick():
            calls.append(time.monotonic())
            if len(calls) == 2:
                second.set()

        self.scheduler = PollScheduler(tick, lambda: 0)
        self.scheduler.start()
        self.assertTrue(second.wait(5))
        self.assertGreaterEqual(calls[1] - calls[0], MIN_INTERVAL_SECONDS * 0.9)

    def test_ticks_never_overlap(self):
        running = []
        overlaps = []
        done = threading.Event()

        def slow_tick():
            if running:
                overlaps.append(True)
            running.append(True)
            time.sleep(0.05)
            running.pop()
            if self.scheduler.tick_count >= 2:
                done.set()

        self.scheduler = PollScheduler(slow_tick, lambda: 0)
        self.scheduler.start()
        self.assertTrue(done.wait(10))
        self.assertEqual(overlaps, [])

    def test_stop_ends_thread(self):
        self.scheduler = PollScheduler(lambda: None, lambda: 60)
        self.scheduler.start()
        self.scheduler.stop(timeout=5)
        self.assertFalse(self.scheduler.is_running)

    def test_tick_exception_is_logged_and_loop_survives(self):
        calls = []
        second = threading.Event()

        def failing_tick():
            calls.append(1)
            if len(calls) == 2:
                second.set()
            raise RuntimeError("boom")

        self.scheduler = PollScheduler(failing_tick, lambda: 0, audit_log=self.audit)
        self.scheduler.start()
        self.assertTrue(second.wait(5))

        errors = read_audit_events(self.audit, "tick_error")
        self.assertGreaterEqual(len(errors), 1)
        self.assertEqual(errors[0]["detail"], "RuntimeError: boom")

    def test_run_once_counts_ticks(self):
        scheduler = PollScheduler(lambda: None, lambda: 3)
        scheduler.run_once()
        scheduler.run_once()
        self.assertEqual(scheduler.tick_count, 2)

    def test_next_delay_has_floor(self):
        self.assertEqual(PollScheduler(lambda: None, lambda: 0).next_delay(), MIN_INTERVAL_SECONDS)
        self.assertEqual(PollScheduler(lambda: None, lambda: 7).next_delay(), 7.0)

    def test_next_delay_falls_back_on_error(self):
        def broken():
            raise ValueError("no config")

        self.assertEqual(PollScheduler(lambda: None, broken).next_delay(), MIN_INTERVAL_SECONDS)


if __name__ == "__main__":
    unittest.main()
