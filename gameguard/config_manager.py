"""
Configuration management for GameGuard.

This module centralizes all configuration-related operations
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .audit_log import AuditEvent, AuditLog
from .common import get_app_directory, get_data_directory, normalize_process_name
from .models import (
    DEFAULT_GRACE_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_TOAST_COOLDOWN_SECONDS,
    RULE_KINDS,
    EngineConfig,
    Rule,
    TimeWindow,
    new_rule_id,
)
from .time_utils import parse_time_of_day

CONFIG_FILE_NAME = "config.json"
DEFAULT_CONFIG_FILE_NAME = "config.default.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "blocked_apps": [],
    "blocked_windows": [],
    "poll_interval_seconds": DEFAULT_POLL_INTERVAL_SECONDS,
    "grace_seconds": DEFAULT_GRACE_SECONDS,
    "toast_cooldown_seconds": DEFAULT_TOAST_COOLDOWN_SECONDS,
    "notifications_enabled": True,
    "sound_enabled": True,
    "event_log_enabled": False,
}


class ConfigError(ValueError):
    """Raised when a configuration is rejected at the settings boundary."""


def validate_window(window: TimeWindow, index: int = 0) -> None:
    """
    Validate a single blocked window.

    Raises:
        ConfigError: If days are empty/out of range, times are malformed or start == end
    """
    label = f"Blocked window {index + 1}"
    if not window.days:
        raise ConfigError(f"{label}: select at least one day.")
    if any(day < 0 or day > 6 for day in window.days):
        raise ConfigError(f"{label}: days must be between 0 (Sunday) and 6 (Saturday).")

    try:
        start = parse_time_of_day(window.start)
    except ValueError:
        raise ConfigError(f"{label}: invalid start time '{window.start}'. Use HH:MM.")
    try:
        end = parse_time_of_day(window.end)
    except ValueError:
        raise ConfigError(f"{label}: invalid end time '{window.end}'. Use HH:MM.")

    if start == end:
        raise ConfigError(f"{label}: start and end time must differ.")


def validate_rule(rule: Rule) -> None:
    """Validate a single blocked application entry."""
    if not rule.id:
        raise ConfigError("Every blocked application needs an id.")
    if not normalize_process_name(rule.process_name):
        raise ConfigError(f"Blocked application '{rule.id}' has no process name.")
    if not isinstance(rule.path_pinned, bool):
        raise ConfigError(f"'{rule.label}': path_pinned must be true or false.")
    if rule.path_pinned and not rule.path:
        raise ConfigError(f"'{rule.label}' is pinned to its path but no path is set.")
    if rule.kind not in RULE_KINDS:
        raise ConfigError(
            f"'{rule.label}': kind must be one of {', '.join(RULE_KINDS)}."
        )


def validate_config(config: EngineConfig) -> None:
    """
    Validate a full configuration.

    WHY: Invalid values are rejected here so the engine always receives a
    usable snapshot.

    Raises:
        ConfigError: On the first problem found
    """
    if config.poll_interval_seconds < 1:
        raise ConfigError("Poll interval must be at least 1 second.")
    if config.grace_seconds < 1:
        raise ConfigError("Grace period must be at least 1 second.")
    if config.toast_cooldown_seconds < 0:
        raise ConfigError("Notification cooldown must be 0 or greater.")
    for key in ("notifications_enabled", "sound_enabled", "event_log_enabled"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"{key} must be true or false.")

    seen_ids = set()
    for rule in config.rules:
        validate_rule(rule)
        if rule.id in seen_ids:
            raise ConfigError(f"Duplicate blocked application id '{rule.id}'.")
        seen_ids.add(rule.id)

    for index, window in enumerate(config.windows):
        validate_window(window, index)


def assign_rule_ids(config: Dict[str, Any]) -> bool:
    """
    Give every blocked application entry without an id a fresh one.

    Entries are changed in place. Returns True if any id was added, so the
    caller can write the file back and keep the ids stable across reloads.
    """
    apps = config.get("blocked_apps")
    if not isinstance(apps, list):
        return False

    taken = {str(app.get("id")) for app in apps if isinstance(app, dict) and app.get("id")}
    changed = False
    for app in apps:
        if not isinstance(app, dict) or app.get("id"):
            continue
        rule_id = new_rule_id()
        while rule_id in taken:
            rule_id = new_rule_id()
        app["id"] = rule_id
        taken.add(rule_id)
        changed = True
    return changed


def normalize_config(config: EngineConfig) -> EngineConfig:
    """Store every pinned path in absolute form."""
    rules = tuple(
        Rule(
            id=rule.id,
            process_name=rule.process_name.strip(),
            path=os.path.abspath(rule.path.strip()) if rule.path.strip() else "",
            path_pinned=rule.path_pinned,
            display_name=rule.display_name.strip(),
            kind=rule.kind,
        )
        for rule in config.rules
    )
    return EngineConfig(
        rules=rules,
        windows=config.windows,
        poll_interval_seconds=config.poll_interval_seconds,
        grace_seconds=config.grace_seconds,
        toast_cooldown_seconds=config.toast_cooldown_seconds,
        notifications_enabled=config.notifications_enabled,
        sound_enabled=config.sound_enabled,
        event_log_enabled=config.event_log_enabled,
    )


class ConfigManager:
    """
    Centralized configuration management for GameGuard.

    WHY THIS CLASS EXISTS:
    - Provides consistent interface for all config operations
    - Hands the engine an immutable snapshot that a concurrent reload cannot tear
    - Picks up edits made to config.json while the monitor is running
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        audit_log: Optional[AuditLog] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize ConfigManager with the per-user data directory.

        Args:
            data_dir: Directory holding config.json. If None, uses get_data_directory()
            audit_log: Optional audit log receiving config_changed/config_load_failed
            logger: Optional logger (defaults to this module's logger)
        """
        self.data_dir = Path(data_dir or get_data_directory())
        self.config_path = self.data_dir / CONFIG_FILE_NAME
        self.default_config_path = get_app_directory() / DEFAULT_CONFIG_FILE_NAME
        self.audit_log = audit_log
        self.logger = logger or logging.getLogger(__name__)

        self.load_error: Optional[str] = None
        self._lock = threading.RLock()
        self._snapshot: Optional[EngineConfig] = None
        self._loaded_mtime: Optional[float] = None

    # --- Raw file access ---

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration dictionary from file with defaults applied.

        WHY: Handles default config fallback. A missing file is created from
        config.default.json (or the built-in defaults); an unreadable file is
        reported through load_error and left untouched on disk.

        Returns:
            Dict: Configuration dictionary with all keys present
        """
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
        except FileNotFoundError:
            config = self._initial_config()
            assign_rule_ids(config)
            self.save_config(config)
            return config
        except (OSError, json.JSONDecodeError) as e:
            self._report_load_error(f"{type(e).__name__}: {e}")
            return dict(DEFAULT_CONFIG)

        if not isinstance(config, dict):
            self._report_load_error("top-level JSON value is not an object")
            return dict(DEFAULT_CONFIG)

        return self.ensure_config_defaults(config)

    def save_config(self, config: Dict[str, Any]) -> None:
        """
        Write a configuration dictionary to disk atomically.

        Raises:
            OSError: If the file cannot be written
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.config_path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.replace(tmp_path, self.config_path)

    def ensure_config_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ensure all required config fields have default values.

        WHY: Prevents missing config fields from breaking the application.
        Missing keys and missing rule ids are written back, so the file
        documents every setting and each rule keeps its id across reloads.
        """
        changed = False
        for key, value in DEFAULT_CONFIG.items():
            if key not in config:
                config[key] = value if not isinstance(value, list) else list(value)
                changed = True

        if assign_rule_ids(config):
            changed = True

        if changed:
            try:
                self.save_config(config)
            except OSError as e:
                self.logger.warning("Could not persist config defaults: %s", e)

        return config

    def _initial_config(self) -> Dict[str, Any]:
        try:
            with open(self.default_config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
            self.logger.info("Loaded default configuration from %s", self.default_config_path)
        except (OSError, json.JSONDecodeError):
            config = {}
            self.logger.info("Using built-in default configuration")

        merged = dict(DEFAULT_CONFIG)
        if isinstance(config, dict):
            merged.update(config)
        return merged

    def _report_load_error(self, reason: str) -> None:
        self.load_error = reason
        self.logger.error("config.json could not be loaded (%s)", reason)
        if self.audit_log:
            self.audit_log.log(AuditEvent.CONFIG_LOAD_FAILED, None, reason)

    # --- Snapshot access ---

    def _file_mtime(self) -> Optional[float]:
        try:
            return self.config_path.stat().st_mtime
        except OSError:
            return None

    def reload(self) -> EngineConfig:
        """
        Re-read config.json and replace the snapshot if it is valid.

        A file that fails validation keeps the previous snapshot in force
        (or the defaults on first load) and sets load_error. A valid file
        that differs from the snapshot in force is audited as config_changed.
        """
        with self._lock:
            self.load_error = None
            previous = self._snapshot
            raw = self.load_config()
            candidate = EngineConfig.from_dict(raw)
            if self.load_error is None:
                try:
                    validate_config(candidate)
                except ConfigError as e:
                    self._report_load_error(str(e))
                else:
                    self._snapshot = normalize_config(candidate)
                    if previous is not None and self._snapshot != previous:
                        self._report_change(self._snapshot)
            if self._snapshot is None:
                self._snapshot = EngineConfig.from_dict(DEFAULT_CONFIG)
            self._loaded_mtime = self._file_mtime()
            return self._snapshot

    def _report_change(self, config: EngineConfig) -> None:
        self.logger.info(
            "Configuration reloaded: %d app(s), %d window(s)",
            len(config.rules),
            len(config.windows),
        )
        if self.audit_log:
            self.audit_log.log(
                AuditEvent.CONFIG_CHANGED,
                None,
                f"apps={len(config.rules)}, windows={len(config.windows)}",
            )

    def current(self) -> EngineConfig:
        """
        Return the current configuration snapshot.

        WHY: Called once at the start of every tick. The file is only re-read
        when its modification time changed since the last load.
        """
        with self._lock:
            if self._snapshot is None or self._file_mtime() != self._loaded_mtime:
                return self.reload()
            return self._snapshot


# === Factory function for convenience ===

def create_config_manager(
    data_dir: Optional[Path] = None, audit_log: Optional[AuditLog] = None
) -> ConfigManager:
    """
    Create a ConfigManager instance with its first snapshot loaded.

    Args:
        data_dir: Data directory. If None, uses get_data_directory()
        audit_log: Optional audit log for config events

    Returns:
        ConfigManager: Configured instance ready to use
    """
    manager = ConfigManager(data_dir, audit_log)
    manager.reload()
    return manager
