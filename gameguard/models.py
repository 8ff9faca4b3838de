"""
Configuration data model for GameGuard.

WHY: The enforcement engine reads one consistent snapshot per tick while the
tray thread may be re-reading config.json at the same time. Frozen dataclasses
with tuple collections make a snapshot safe to share between threads.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Tuple

DEFAULT_POLL_INTERVAL_SECONDS = 3
DEFAULT_GRACE_SECONDS = 300
DEFAULT_TOAST_COOLDOWN_SECONDS = 300

KIND_LAUNCHER = "launcher"
KIND_GAME = "game"
RULE_KINDS = (KIND_LAUNCHER, KIND_GAME)

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def new_rule_id() -> str:
    """Short opaque id; written back to config.json once assigned."""
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class Rule:
    """A configured executable subject to enforcement."""

    id: str
    process_name: str
    path: str = ""
    path_pinned: bool = False
    display_name: str = ""
    kind: str = KIND_LAUNCHER

    @property
    def label(self) -> str:
        return self.display_name or self.process_name

    @property
    def requires_path_match(self) -> bool:
        return self.path_pinned is True and bool(self.path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        return cls(
            id=str(data.get("id") or ""),
            process_name=str(data.get("process_name", "") or ""),
            path=str(data.get("path", "") or ""),
            path_pinned=data.get("path_pinned", False),
            display_name=str(data.get("display_name", "") or ""),
            kind=str(data.get("kind", KIND_LAUNCHER) or KIND_LAUNCHER),
        )


@dataclass(frozen=True)
class TimeWindow:
    """
    Weekday-tagged time range.

    days: 0 = Sunday ... 6 = Saturday
    start/end: "HH:MM" 24h; end < start means the window runs past midnight.
    """

    days: Tuple[int, ...] = ()
    start: str = "23:00"
    end: str = "07:00"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeWindow":
        raw_days = data.get("days") or []
        days = []
        for day in raw_days:
            try:
                days.append(int(day))
            except (TypeError, ValueError):
                continue
        return cls(
            days=tuple(sorted(set(days))),
            start=str(data.get("start", "") or ""),
            end=str(data.get("end", "") or ""),
        )

    def describe(self) -> str:
        names = ", ".join(DAY_NAMES[d] for d in self.days if 0 <= d <= 6)
        return f"{names} {self.start}-{self.end}"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration snapshot handed to the engine each tick."""

    rules: Tuple[Rule, ...] = ()
    windows: Tuple[TimeWindow, ...] = ()
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    grace_seconds: int = DEFAULT_GRACE_SECONDS
    toast_cooldown_seconds: int = DEFAULT_TOAST_COOLDOWN_SECONDS
    notifications_enabled: bool = True
    sound_enabled: bool = True
    event_log_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        rules = tuple(
            Rule.from_dict(item)
            for item in data.get("blocked_apps", []) or []
            if isinstance(item, dict)
        )
        windows = tuple(
            TimeWindow.from_dict(item)
            for item in data.get("blocked_windows", []) or []
            if isinstance(item, dict)
        )
        return cls(
            rules=rules,
            windows=windows,
            poll_interval_seconds=_as_int(
                data.get("poll_interval_seconds"), DEFAULT_POLL_INTERVAL_SECONDS
            ),
            grace_seconds=_as_int(data.get("grace_seconds"), DEFAULT_GRACE_SECONDS),
            toast_cooldown_seconds=_as_int(
                data.get("toast_cooldown_seconds"), DEFAULT_TOAST_COOLDOWN_SECONDS
            ),
            # Flags are kept as written; validate_config rejects non-bool values
            notifications_enabled=data.get("notifications_enabled", True),
            sound_enabled=data.get("sound_enabled", True),
            event_log_enabled=data.get("event_log_enabled", False),
        )


def _as_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
