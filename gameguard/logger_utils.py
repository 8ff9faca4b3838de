"""
Application logging for GameGuard.

All modules log through children of the "gameguard" logger, configured once
by get_logger():

    gameguard.log         everything at INFO (DEBUG in development mode)
    gameguard_errors.log  errors only, each with a traceback or the caller's stack
    Windows Event Log     warnings and errors, when event_log_enabled is set
    stderr                development mode only

Enforcement events (grace started, terminated, ...) go to the audit log, not
here; this log is for diagnosing GameGuard itself.
"""

import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from .common import APP_NAME, get_data_directory, is_development_mode

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME = "gameguard.log"
ERROR_LOG_FILE_NAME = "gameguard_errors.log"
LOG_MAX_BYTES = 512 * 1024
LOG_BACKUP_COUNT = 3


class _ErrorLogFormatter(logging.Formatter):
    """
    Error log lines always end with a traceback.

    Records logged without exc_info get the exception being handled, if any,
    otherwise the stack of the logging call.
    """

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if record.exc_info or record.stack_info:
            return text

        if sys.exc_info()[0] is not None:
            return f"{text}\n{traceback.format_exc().rstrip()}"

        frames = [
            frame
            for frame in traceback.extract_stack()
            if frame.filename != __file__
            and f"{os.sep}logging{os.sep}" not in frame.filename
        ]
        stack = "".join(traceback.format_list(frames)).rstrip()
        return f"{text}\nStack (most recent call last):\n{stack}"


class _EventLogHandler(logging.Handler):
    """Reports warnings and errors to the Windows Application event log."""

    def __init__(self, evtlogutil, warning_type: int, error_type: int):
        super().__init__(logging.WARNING)
        self._evtlogutil = evtlogutil
        self._warning_type = warning_type
        self._error_type = error_type

    def emit(self, record: logging.LogRecord):
        try:
            event_type = (
                self._error_type if record.levelno >= logging.ERROR else self._warning_type
            )
            self._evtlogutil.ReportEvent(
                APP_NAME,
                eventID=1,
                eventCategory=0,
                eventType=event_type,
                strings=[self.format(record)],
            )
        except Exception:
            self.handleError(record)


def _create_event_log_handler():
    """Event Log handler, or None when pywin32 is not installed."""
    try:
        import win32con  # type: ignore
        import win32evtlogutil  # type: ignore
    except ImportError:
        return None

    handler = _EventLogHandler(
        win32evtlogutil, win32con.EVENTLOG_WARNING_TYPE, win32con.EVENTLOG_ERROR_TYPE
    )
    handler.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
    return handler


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter):
    handler = RotatingFileHandler(
        path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def get_logger(
    name: str = "gameguard",
    data_dir: Path | None = None,
    event_log_enabled: bool = False,
):
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    development = is_development_mode()
    logger.setLevel(logging.DEBUG if development else logging.INFO)

    data_dir = data_dir or get_data_directory()
    data_dir.mkdir(parents=True, exist_ok=True)

    logger.addHandler(
        _rotating_handler(data_dir / LOG_FILE_NAME, logging.DEBUG, logging.Formatter(LOG_FORMAT))
    )
    logger.addHandler(
        _rotating_handler(
            data_dir / ERROR_LOG_FILE_NAME, logging.ERROR, _ErrorLogFormatter(LOG_FORMAT)
        )
    )

    if event_log_enabled and os.name == "nt":
        event_handler = _create_event_log_handler()
        if event_handler is not None:
            logger.addHandler(event_handler)
        else:
            logger.warning("event_log_enabled is set but pywin32 is not installed")

    if development:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    logger.propagate = False
    return logger
