"""
Enforcement engine for GameGuard.

One tick = one full pass:
    snapshot config -> is blocked time active?
    no  -> abandon every pending grace period (nothing is killed)
    yes -> per rule: enumerate, verify identity, start/advance grace,
           warn (subject to cooldown), terminate when grace elapsed,
           then evict instances that disappeared or stopped verifying.

The engine owns all transient state (grace entries, cooldowns, verify-failed
markers). Only the scheduler thread calls tick(); status() may be called from
the tray thread and waits for a running tick to finish.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Set

from .audit_log import AuditEvent, AuditLog
from .grace_tracker import GraceTracker, InstanceKey
from .identity import IdentityVerifier, VerdictKind
from .models import EngineConfig, Rule
from .notification_manager import NotificationGate, NotificationManager
from .process_probe import ProcessInfo, ProcessProbe, TerminationOutcome
from .time_utils import is_enforcement_active


@dataclass
class TickReport:
    """What a single tick did; returned for the scheduler log line and tests."""

    active: bool
    detected: List[InstanceKey] = field(default_factory=list)
    warned: List[InstanceKey] = field(default_factory=list)
    terminated: List[InstanceKey] = field(default_factory=list)
    evicted: List[InstanceKey] = field(default_factory=list)
    cancelled: int = 0
    errors: int = 0


@dataclass(frozen=True)
class EngineStatus:
    active: bool
    tracked: int
    next_termination_at: Optional[datetime]


class EnforcementEngine:
    """
    Orchestrates window evaluation, identity checks, grace tracking and
    warnings for every configured rule.

    USAGE:
        engine = EnforcementEngine(config_manager.current, ProcessProbe(), audit, notifier)
        engine.tick()
    """

    def __init__(
        self,
        config_provider: Callable[[], EngineConfig],
        probe: ProcessProbe,
        audit_log: AuditLog,
        notifier: Optional[NotificationManager] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None,
    ):
        self._config_provider = config_provider
        self._probe = probe
        self._verifier = IdentityVerifier(probe)
        self._audit = audit_log
        self._notifier = notifier
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

        self._tracker = GraceTracker()
        self._gate = NotificationGate()
        self._lock = threading.Lock()

    @property
    def tracker(self) -> GraceTracker:
        return self._tracker

    @property
    def gate(self) -> NotificationGate:
        return self._gate

    # --- Tick ---

    def tick(self, now: Optional[datetime] = None) -> TickReport:
        with self._lock:
            config = self._config_provider()
            now = now or self._clock()

            if not is_enforcement_active(now, config.windows):
                return self._lift_window()

            report = TickReport(active=True)
            enforceable: Set[InstanceKey] = set()
            unverifiable: Set[InstanceKey] = set()
            # Rules whose processes could not be examined this tick keep their state
            skipped: Set[str] = set()

            for rule in config.rules:
                try:
                    if not self._enforce_rule(
                        rule, config, now, enforceable, unverifiable, report
                    ):
                        skipped.add(rule.id)
                except Exception as e:
                    skipped.add(rule.id)
                    report.errors += 1
                    self._logger.exception("Enforcement of %s failed", rule.process_name)
                    self._audit.log(
                        AuditEvent.MONITOR_ERROR, rule.process_name, f"{type(e).__name__}: {e}"
                    )

            for entry in self._tracker.evict_missing(enforceable, skipped):
                report.evicted.append(entry.key)
                self._logger.info(
                    "Stopped tracking pid=%s (rule %s): no longer running or verifiable",
                    entry.key.pid,
                    entry.key.rule_id,
                )
            self._tracker.forget_verify_failures(unverifiable, skipped)
            return report

    def _lift_window(self) -> TickReport:
        report = TickReport(active=False)
        if len(self._tracker):
            report.cancelled = self._tracker.clear()
            self._logger.info(
                "Blocked window lifted; cancelled %d pending grace period(s)", report.cancelled
            )
            self._audit.log(AuditEvent.GRACE_CANCELLED, None, f"cancelled={report.cancelled}")
        else:
            self._tracker.clear()
        return report

    def _enforce_rule(
        self,
        rule: Rule,
        config: EngineConfig,
        now: datetime,
        enforceable: Set[InstanceKey],
        unverifiable: Set[InstanceKey],
        report: TickReport,
    ) -> bool:
        listing = self._probe.list_by_name(rule.process_name)
        if not listing.ok:
            self._logger.warning(
                "Skipping %s this tick: process list unavailable (%s)",
                rule.process_name,
                listing.reason,
            )
            return False

        for info in listing.value:
            try:
                self._enforce_instance(rule, info, config, now, enforceable, unverifiable, report)
            except Exception as e:
                report.errors += 1
                self._logger.exception(
                    "Unexpected error handling %s pid=%s", rule.process_name, info.pid
                )
                self._audit.log(
                    AuditEvent.MONITOR_ERROR,
                    rule.process_name,
                    f"pid={info.pid}, {type(e).__name__}: {e}",
                )
        return True

    def _enforce_instance(
        self,
        rule: Rule,
        info: ProcessInfo,
        config: EngineConfig,
        now: datetime,
        enforceable: Set[InstanceKey],
        unverifiable: Set[InstanceKey],
        report: TickReport,
    ) -> None:
        key = InstanceKey(rule.id, info.pid, info.create_time)

        verdict = self._verifier.verify(rule, info)
        if verdict.kind is VerdictKind.UNVERIFIABLE:
            unverifiable.add(key)
            if self._tracker.mark_verify_failed(key):
                self._audit.log(
                    AuditEvent.VERIFY_FAILED,
                    rule.process_name,
                    f"pid={info.pid}, reason={verdict.reason}",
                )
            return
        if verdict.kind is VerdictKind.NO_MATCH:
            return

        entry = self._tracker.get(key)
        if entry is None:
            entry = self._tracker.start(key, now, config.grace_seconds)
            enforceable.add(key)
            report.detected.append(key)

            self._audit.log(AuditEvent.BLOCKED_DETECTED, rule.process_name, f"pid={info.pid}")
            self._audit.log(
                AuditEvent.GRACE_STARTED,
                rule.process_name,
                f"pid={info.pid}, plannedKillAt={entry.planned_kill_at.isoformat()}",
            )

            if self._warn(rule, config, now):
                entry.warned = True
                report.warned.append(key)
        elif entry.is_elapsed(now):
            try:
                self._terminate(rule, info)
            finally:
                self._tracker.remove(key)
            report.terminated.append(key)
        else:
            enforceable.add(key)

    def _warn(self, rule: Rule, config: EngineConfig, now: datetime) -> bool:
        if not config.notifications_enabled or self._notifier is None:
            return False
        if not self._gate.should_warn(rule.id, now, config.toast_cooldown_seconds):
            self._logger.debug("Warning for %s suppressed by cooldown", rule.label)
            return False

        self._gate.record_warned(rule.id, now)
        self._notifier.notify_grace_started(
            rule.label, config.grace_seconds, play_sound=config.sound_enabled
        )
        return True

    def _terminate(self, rule: Rule, info: ProcessInfo) -> None:
        result = self._probe.terminate(info)

        if result.outcome is TerminationOutcome.KILLED:
            self._logger.warning("Closed %s (pid=%s): grace period over", rule.label, info.pid)
            self._audit.log(AuditEvent.TERMINATED_SUCCESS, rule.process_name, f"pid={info.pid}")
        elif result.outcome is TerminationOutcome.ACCESS_DENIED:
            self._logger.warning(
                "Cannot close %s (pid=%s): access denied; not retrying", rule.label, info.pid
            )
            self._audit.log(
                AuditEvent.TERMINATE_SKIPPED,
                rule.process_name,
                f"pid={info.pid}, reason=access_denied",
            )
        elif result.outcome is TerminationOutcome.ALREADY_EXITED:
            self._logger.info("%s (pid=%s) exited before termination", rule.label, info.pid)
        else:
            self._logger.error(
                "Failed to close %s (pid=%s): %s", rule.label, info.pid, result.reason
            )
            self._audit.log(
                AuditEvent.TERMINATED_FAILED,
                rule.process_name,
                f"pid={info.pid}, {result.reason}",
            )

    # --- Status / lifecycle ---

    def status(self, now: Optional[datetime] = None) -> EngineStatus:
        config = self._config_provider()
        now = now or self._clock()
        with self._lock:
            return EngineStatus(
                active=is_enforcement_active(now, config.windows),
                tracked=len(self._tracker),
                next_termination_at=self._tracker.next_deadline(),
            )

    def reset(self) -> None:
        """Drop all transient state (used when monitoring stops)."""
        with self._lock:
            self._tracker.clear()
            self._gate = NotificationGate()
