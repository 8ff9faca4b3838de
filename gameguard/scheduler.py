"""
Non-overlapping periodic scheduler.

WHY: The enforcement pass must never run twice at once. Instead of a
repeating timer, the worker runs the tick, then waits the configured interval
measured from the end of that tick, then runs the next one. A slow tick
delays the next one; it can never stack.
"""

import logging
import threading
from typing import Callable, Optional

from .audit_log import AuditEvent, AuditLog

MIN_INTERVAL_SECONDS = 1.0


class PollScheduler:
    """
    Runs `tick` on a daemon thread, re-arming after each completed tick.

    USAGE:
        scheduler = PollScheduler(engine.tick, lambda: config_manager.current().poll_interval_seconds)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        tick: Callable[[], object],
        interval: Callable[[], float],
        audit_log: Optional[AuditLog] = None,
        logger: Optional[logging.Logger] = None,
        name: str = "gameguard-monitor",
    ):
        self._tick = tick
        self._interval = interval
        self._audit = audit_log
        self._logger = logger or logging.getLogger(__name__)
        self._name = name

        self._condition = threading.Condition()
        self._stop_requested = False
        self._thread: Optional[threading.Thread] = None
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        with self._condition:
            self._stop_requested = False
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        self._logger.info("Scheduler started")

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        with self._condition:
            self._stop_requested = True
            self._condition.notify_all()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        self._logger.info("Scheduler stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run_once(self) -> None:
        """
        Run one tick; any exception is logged and swallowed here.

        WHY: This is the outermost boundary. Whatever escapes the engine's own
        per-rule handling must not kill the monitoring loop.
        """
        try:
            self._tick()
        except Exception as e:
            self._logger.exception("Enforcement tick failed")
            if self._audit:
                self._audit.log(AuditEvent.TICK_ERROR, None, f"{type(e).__name__}: {e}")
        finally:
            self.tick_count += 1

    def next_delay(self) -> float:
        try:
            delay = float(self._interval())
        except Exception:
            self._logger.exception("Could not read poll interval; using minimum")
            return MIN_INTERVAL_SECONDS
        return max(MIN_INTERVAL_SECONDS, delay)

    def _run(self) -> None:
        while True:
            with self._condition:
                if self._stop_requested:
                    return

            self.run_once()

            delay = self.next_delay()
            with self._condition:
                if self._condition.wait_for(lambda: self._stop_requested, timeout=delay):
                    return
