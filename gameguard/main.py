"""
GameGuard entry point.

Wires the configuration store, audit log, notifier, enforcement engine,
scheduler and tray icon together, and provides the `gameguard` command.
"""

import argparse
import logging
import os
import subprocess
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .audit_log import AuditEvent, AuditLog
from .autostart import AutostartManager
from .common import APP_NAME, get_app_directory, get_data_directory
from .config_manager import create_config_manager
from .engine import EnforcementEngine, TickReport
from .logger_utils import get_logger
from .models import EngineConfig
from .notification_manager import NotificationManager
from .process_probe import ProcessProbe
from .scheduler import PollScheduler
from .single_instance import ensure_single_instance
from .system_tray import SystemTrayManager, is_tray_supported
from .time_utils import is_enforcement_active, window_kind
from .versioning import get_version


def open_path(path: Path) -> bool:
    """Open a file or folder with the platform's default handler"""
    try:
        if sys.platform == "win32":
            os.startfile(str(path))  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)])
        else:
            subprocess.Popen(["xdg-open", str(path)])
        return True
    except OSError as e:
        logging.getLogger(__name__).warning("Could not open %s: %s", path, e)
        return False


class GameGuardApp:
    """
    Owns every long-lived component of a running GameGuard.

    USAGE:
        app = GameGuardApp()
        app.run()  # blocks until Exit is chosen in the tray (or Ctrl+C)
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        app_dir: Optional[Path] = None,
        probe: Optional[ProcessProbe] = None,
        notifier: Optional[NotificationManager] = None,
        use_tray: bool = True,
    ):
        self.data_dir = Path(data_dir or get_data_directory())
        self.app_dir = Path(app_dir or get_app_directory())
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.audit_log = AuditLog(self.data_dir)
        self.config_manager = create_config_manager(self.data_dir, self.audit_log)
        config = self.config_manager.current()

        self.logger = get_logger("gameguard", self.data_dir, config.event_log_enabled)
        self.notifier = notifier or NotificationManager(self.app_dir)
        self.autostart = AutostartManager()

        self.engine = EnforcementEngine(
            self.config_manager.current,
            probe or ProcessProbe(),
            self.audit_log,
            self.notifier,
        )
        self.scheduler = PollScheduler(
            self._tick,
            lambda: self.config_manager.current().poll_interval_seconds,
            audit_log=self.audit_log,
        )
        self.tray = SystemTrayManager(self) if use_tray else None

    def _tick(self) -> TickReport:
        report = self.engine.tick()
        if self.tray:
            self.tray.set_enforcing(report.active)
        return report

    # --- Lifecycle ---

    def start(self) -> None:
        self.logger.info("Monitor start")
        self.audit_log.log(AuditEvent.MONITOR_STARTED, None, f"version={get_version()}")
        if self.config_manager.load_error:
            self.notifier.notify_config_warning(self.config_manager.load_error)
        self.scheduler.start()

    def stop(self) -> None:
        if not self.scheduler.is_running:
            return
        self.scheduler.stop()
        self.engine.reset()
        self.audit_log.log(AuditEvent.MONITOR_STOPPED)
        self.logger.info("Monitor stop")

    def run(self) -> None:
        self.start()
        try:
            if self.tray and is_tray_supported():
                self.tray.run()
            else:
                if self.tray:
                    self.logger.warning("System tray unavailable; running headless")
                while self.scheduler.is_running:
                    time.sleep(1)
        except KeyboardInterrupt:
            self.logger.info("Monitoring stopped by user")
        finally:
            self.stop()

    # --- Tray actions ---

    def open_settings(self) -> None:
        # The file is re-read on the next tick once it changes on disk
        open_path(self.config_manager.config_path)

    def open_log_folder(self) -> None:
        open_path(self.data_dir)

    def show_status(self) -> None:
        status = self.engine.status()
        self.notifier.notify_status(status.active, status.tracked)

    def quit(self) -> None:
        self.stop()
        if self.tray:
            self.tray.stop_tray()


# === Command line ===


def describe_config(config: EngineConfig) -> list[str]:
    lines = [
        f"Poll interval: {config.poll_interval_seconds}s, grace: {config.grace_seconds}s, "
        f"notification cooldown: {config.toast_cooldown_seconds}s",
        f"Blocked apps ({len(config.rules)}):",
    ]
    for rule in config.rules:
        pinned = f" [pinned: {rule.path}]" if rule.requires_path_match else ""
        lines.append(f"  - {rule.label} ({rule.process_name}){pinned}")
    lines.append(f"Blocked windows ({len(config.windows)}):")
    for window in config.windows:
        lines.append(f"  - {window.describe()} ({window_kind(window)})")
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gameguard",
        description=f"{APP_NAME}: close blocked apps during blocked time windows",
    )
    parser.add_argument("--no-tray", action="store_true", help="Run without a tray icon")
    parser.add_argument(
        "--status", action="store_true", help="Print whether blocked time is active now"
    )
    parser.add_argument(
        "--check-config", action="store_true", help="Validate config.json and print it"
    )
    parser.add_argument(
        "--tail", type=int, metavar="N", help="Print the last N audit log events"
    )
    parser.add_argument("--version", action="store_true", help="Print the version")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the gameguard command"""
    args = build_parser().parse_args(argv)
    data_dir = get_data_directory()

    if args.version:
        print(f"{APP_NAME} {get_version()}")
        return 0

    if args.tail is not None:
        for event in AuditLog(data_dir).read_recent(args.tail):
            print(
                f"{event.get('timestamp')} | {event.get('event')} | "
                f"{event.get('process') or '-'} | {event.get('detail') or ''}"
            )
        return 0

    if args.check_config or args.status:
        config_manager = create_config_manager(data_dir)
        config = config_manager.current()
        if config_manager.load_error:
            print(f"config.json is invalid: {config_manager.load_error}")
            return 1
        if args.check_config:
            print("\n".join(describe_config(config)))
        if args.status:
            if is_enforcement_active(datetime.now(), config.windows):
                print("BLOCKED NOW — enforcement is active.")
            else:
                print("ALLOWED NOW — no restrictions in effect.")
        return 0

    # Only one monitor per session
    single_instance_lock = ensure_single_instance("GameGuard_Monitor")
    if single_instance_lock is None:
        print(f"{APP_NAME} is already running. Only one instance allowed.")
        return 1

    try:
        GameGuardApp(data_dir, use_tray=not args.no_tray).run()
    finally:
        single_instance_lock.release()
    return 0


if __name__ == "__main__":
    sys.exit(main())
