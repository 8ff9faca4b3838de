"""
Grace-period bookkeeping for detected process instances.

Each instance moves Unseen -> Detected (-> Warned) and leaves tracking when it
is terminated, exits on its own, stops verifying, or the blocked window lifts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional, Set


class InstanceKey(NamedTuple):
    """Identity of one process instance under one rule, valid for its lifetime."""

    rule_id: str
    pid: int
    started_at: Optional[float] = None


@dataclass
class GraceEntry:
    key: InstanceKey
    first_seen_at: datetime
    planned_kill_at: datetime
    warned: bool = False

    def is_elapsed(self, now: datetime) -> bool:
        return now >= self.planned_kill_at


class GraceTracker:
    """
    Keyed grace state owned by the enforcement engine.

    The deadline is fixed when an instance is first detected, so a grace
    period changed in the settings applies to new detections only.
    """

    def __init__(self):
        self._entries: Dict[InstanceKey, GraceEntry] = {}
        self._verify_failed_logged: Set[InstanceKey] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: InstanceKey) -> bool:
        return key in self._entries

    def get(self, key: InstanceKey) -> Optional[GraceEntry]:
        return self._entries.get(key)

    def keys(self) -> List[InstanceKey]:
        return list(self._entries)

    def entries(self) -> List[GraceEntry]:
        return list(self._entries.values())

    def start(self, key: InstanceKey, now: datetime, grace_seconds: int) -> GraceEntry:
        """Begin tracking `key`; an existing entry is returned unchanged."""
        entry = self._entries.get(key)
        if entry is None:
            entry = GraceEntry(
                key=key,
                first_seen_at=now,
                planned_kill_at=now + timedelta(seconds=grace_seconds),
            )
            self._entries[key] = entry
        return entry

    def remove(self, key: InstanceKey) -> Optional[GraceEntry]:
        self._verify_failed_logged.discard(key)
        return self._entries.pop(key, None)

    def evict_missing(
        self, present: Iterable[InstanceKey], keep_rules: Iterable[str] = ()
    ) -> List[GraceEntry]:
        """
        Drop every tracked instance not in `present` and return the dropped entries.

        Instances of rules in `keep_rules` are left alone; their processes were
        not examined this tick.
        """
        keep = set(present)
        rules = set(keep_rules)
        stale = [
            key for key in self._entries if key not in keep and key.rule_id not in rules
        ]
        return [self._entries.pop(key) for key in stale]

    def clear(self) -> int:
        """Abandon every countdown at once (window lifted). Returns how many were dropped."""
        dropped = len(self._entries)
        self._entries.clear()
        self._verify_failed_logged.clear()
        return dropped

    # --- verify_failed de-duplication ---

    def mark_verify_failed(self, key: InstanceKey) -> bool:
        """Record an unverifiable instance; True only the first time for that instance."""
        if key in self._verify_failed_logged:
            return False
        self._verify_failed_logged.add(key)
        return True

    def forget_verify_failures(
        self, still_present: Iterable[InstanceKey], keep_rules: Iterable[str] = ()
    ) -> None:
        """Forget unverifiable instances that were not seen this tick."""
        seen = set(still_present)
        rules = set(keep_rules)
        self._verify_failed_logged = {
            key
            for key in self._verify_failed_logged
            if key in seen or key.rule_id in rules
        }

    def next_deadline(self) -> Optional[datetime]:
        if not self._entries:
            return None
        return min(entry.planned_kill_at for entry in self._entries.values())
