"""
Notification manager for GameGuard.

WHY: Provides system notifications and non-blocking sound playback
to warn users before blocked applications are closed, and a per-app
cooldown so a burst of detections does not become a burst of toasts.
"""

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame  # noqa: E402

from .common import APP_NAME, get_app_directory  # noqa: E402

WARNING_TITLE = f"{APP_NAME} — Blocked Time"

logger = logging.getLogger(__name__)

# === Sound playback infrastructure ===
# Non-blocking sound playback using threading and pygame.


def _play_sound_blocking(sound_path: Path) -> None:
    """
    Play sound file (blocking call - meant to run in thread).
    """
    if not sound_path.exists():
        return

    try:
        pygame.mixer.init()
        pygame.mixer.music.load(str(sound_path))
        pygame.mixer.music.play()
        while pygame.mixer.music.get_busy():
            pygame.time.wait(100)
    except pygame.error as e:
        logger.warning("Could not play %s: %s", sound_path, e)


def play_sound_async(sound_path: Path) -> None:
    """
    Play sound file asynchronously (non-blocking).

    WHY: The enforcement tick must not wait for sound to finish.
    Spawns daemon thread so it won't prevent process exit.
    """
    if not sound_path.exists():
        logger.warning("Sound file not found: %s", sound_path)
        return

    thread = threading.Thread(target=_play_sound_blocking, args=(sound_path,), daemon=True)
    thread.start()


# === Windows toast notifications ===


def _show_toast_notification(title: str, message: str, duration: int = 10) -> None:
    """
    Show Windows toast notification.

    WHY: Visual alert to user even when nothing of GameGuard is on screen.
    win10toast is a Windows-only dependency, so it is imported on use.
    """
    try:
        from win10toast import ToastNotifier

        toaster = ToastNotifier()
        toaster.show_toast(title, message, duration=duration, threaded=True)
    except Exception as e:
        logger.warning("Toast notification failed (%s): %s | %s", e, title, message)


def show_notification(title: str, message: str, duration: int = 10) -> None:
    """
    Show system notification (non-blocking wrapper).

    WHY: Public API for showing notifications. Ensures non-blocking behavior.
    """
    logger.info("Notification: %s | %s", title, message)
    thread = threading.Thread(
        target=_show_toast_notification,
        args=(title, message, duration),
        daemon=True,
    )
    thread.start()


def format_grace_duration(grace_seconds: int) -> str:
    """
    Human-readable grace period for the warning text.

    300 -> "5 minutes", 60 -> "1 minute", 45 -> "45 seconds"
    """
    minutes = grace_seconds // 60
    if minutes >= 1:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{grace_seconds} seconds"


def build_warning_message(display_name: str, grace_seconds: int) -> str:
    return (
        f"Blocked time window active. {display_name} will close in "
        f"{format_grace_duration(grace_seconds)}."
    )


# === Per-app warning cooldown ===


class NotificationGate:
    """
    Suppresses repeated warnings for the same rule within a cooldown.

    WHY: A script spawning many copies of a blocked program would otherwise
    produce one toast per copy. Suppression only affects the toast; the
    grace period of every copy still runs.
    """

    def __init__(self):
        self._last_warned: Dict[str, datetime] = {}

    def should_warn(self, rule_id: str, now: datetime, cooldown_seconds: int) -> bool:
        last = self._last_warned.get(rule_id)
        if last is None:
            return True
        return (now - last).total_seconds() >= cooldown_seconds

    def record_warned(self, rule_id: str, now: datetime) -> None:
        self._last_warned[rule_id] = now


# === Notification manager class ===


class NotificationManager:
    """
    Shows GameGuard's user-visible messages.

    WHY: Centralizes message wording and sound selection so the engine only
    says *what* happened.
    """

    def __init__(self, app_dir: Optional[Path] = None):
        self.app_dir = app_dir or get_app_directory()
        self.assets_dir = self.app_dir / "assets"
        self.alarm_sound = self.assets_dir / "alarm.mp3"

    def notify_grace_started(
        self, display_name: str, grace_seconds: int, play_sound: bool = True
    ) -> None:
        """Warn that `display_name` will be closed once the grace period ends."""
        show_notification(WARNING_TITLE, build_warning_message(display_name, grace_seconds))
        if play_sound:
            try:
                play_sound_async(self.alarm_sound)
            except Exception as e:
                logger.error("Failed to play notification sound: %s", e)

    def notify_status(self, blocked: bool, tracked: int = 0) -> None:
        if blocked:
            message = "BLOCKED NOW — enforcement is active."
            if tracked:
                message += f" {tracked} process(es) in grace period."
        else:
            message = "ALLOWED NOW — no restrictions in effect."
        show_notification(f"{APP_NAME} Status", message, duration=4)

    def notify_config_warning(self, load_error: str) -> None:
        show_notification(
            f"{APP_NAME} — Config Warning",
            f"config.json could not be loaded ({load_error}). The last valid settings stay in effect.",
            duration=8,
        )
