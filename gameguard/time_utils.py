"""
Time utilities for GameGuard.

This module holds time parsing, validation and the blocked-window evaluator.

WHY THIS EXISTS:
- The config manager validates "HH:MM" strings with the same parser the
  evaluator uses, so a window that validates is a window that evaluates
- is_enforcement_active() is the single answer to "is blocked time now?",
  shared by the engine, the tray Status item and the CLI
"""

from datetime import datetime, time
from typing import Iterable, Optional, Tuple

from .models import TimeWindow


def parse_time_str(time_str: str) -> Tuple[int, int]:
    """
    Parse 'HH:MM' string to (hours, minutes) tuple.

    WHY: We need numeric values for time comparison logic.

    Args:
        time_str: Time string in 'HH:MM' format ('9:00' is accepted)

    Returns:
        Tuple[int, int]: (hours, minutes)

    Raises:
        ValueError: If time_str is not in valid format
    """
    if not time_str:
        raise ValueError("Time string cannot be empty")

    parts = time_str.strip().split(":")
    if len(parts) != 2:
        raise ValueError("Time must be in HH:MM format")

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError as e:
        raise ValueError(f"Invalid time format: {e}")

    if not (0 <= hours <= 23):
        raise ValueError("Hours must be 0-23")
    if not (0 <= minutes <= 59):
        raise ValueError("Minutes must be 0-59")

    return hours, minutes


def parse_time_of_day(time_str: str) -> time:
    """Parse 'HH:MM' into a datetime.time (raises ValueError like parse_time_str)."""
    hours, minutes = parse_time_str(time_str)
    return time(hours, minutes)


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6 (datetime uses Monday = 0)."""
    return (moment.weekday() + 1) % 7


def window_kind(window: TimeWindow) -> str:
    """Return 'same-day', 'overnight' or 'invalid' for display and validation."""
    try:
        start = parse_time_of_day(window.start)
        end = parse_time_of_day(window.end)
    except ValueError:
        return "invalid"
    if start == end:
        return "invalid"
    return "same-day" if start < end else "overnight"


def is_window_active(now: datetime, window: TimeWindow) -> bool:
    """
    Check whether a single weekday-tagged window covers `now`.

    Same-day (start < end): today in days and start <= now < end.
    Overnight (start > end): (today in days and now >= start) or
    (yesterday in days and now < end). The early-morning part belongs to the
    day the window started on.
    Windows with no days, unparsable times or start == end never match.
    """
    if not window.days:
        return False

    try:
        start = parse_time_of_day(window.start)
        end = parse_time_of_day(window.end)
    except ValueError:
        return False

    if start == end:
        return False

    today = sunday_based_weekday(now)
    current = now.time()

    if start < end:
        return today in window.days and start <= current < end

    yesterday = (today + 6) % 7
    return (today in window.days and current >= start) or (
        yesterday in window.days and current < end
    )


def is_enforcement_active(
    now: datetime, windows: Optional[Iterable[TimeWindow]]
) -> bool:
    """
    Check if `now` falls within any configured blocked window.

    WHY: Main entry point for the enforcement engine.
    An empty schedule never enforces (fail-open): without windows there is
    no blocked time to honour.
    """
    if not windows:
        return False

    return any(is_window_active(now, window) for window in windows)
