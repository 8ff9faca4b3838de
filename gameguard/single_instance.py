"""
Single instance enforcement for GameGuard.

Two monitors would each run their own grace periods and double every
warning, so only one enforcement process may run per user session.
A named mutex is used on Windows and an exclusive lock file elsewhere.
"""

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ERROR_ALREADY_EXISTS = 183


class SingleInstance:
    """
    Holds the per-session instance lock until release() is called.

    USAGE:
        with SingleInstance("GameGuard") as lock:
            if lock.is_already_running():
                ...
    """

    def __init__(self, name: str = "GameGuard", lock_dir: Optional[Path] = None):
        self.name = name
        self.lock_dir = Path(lock_dir or tempfile.gettempdir())
        self.lockfile_path = self.lock_dir / f"{name}_instance.lock"
        self._mutex = None
        self._lockfile = None
        self.is_locked = False

        if sys.platform == "win32":
            self._acquire_mutex()
        else:
            self._acquire_file_lock()

    def _acquire_mutex(self) -> None:
        import ctypes
        from ctypes import wintypes

        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        create_mutex = kernel32.CreateMutexW
        create_mutex.argtypes = [wintypes.LPVOID, wintypes.BOOL, wintypes.LPCWSTR]
        create_mutex.restype = wintypes.HANDLE

        # Local\ scopes the mutex to the logon session
        self._mutex = create_mutex(None, True, f"Local\\{self.name}_SingleInstance")
        if not self._mutex:
            logger.warning("CreateMutexW failed; falling back to lock file")
            self._acquire_file_lock()
            return

        if ctypes.get_last_error() == ERROR_ALREADY_EXISTS:
            kernel32.CloseHandle(self._mutex)
            self._mutex = None
            self.is_locked = False
        else:
            self.is_locked = True

    def _acquire_file_lock(self) -> None:
        import fcntl

        self.lock_dir.mkdir(parents=True, exist_ok=True)
        handle = open(self.lockfile_path, "a+")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            self.is_locked = False
            return

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._lockfile = handle
        self.is_locked = True

    def is_already_running(self) -> bool:
        """True when another process holds the lock."""
        return not self.is_locked

    def release(self) -> None:
        """Release the instance lock (safe to call more than once)."""
        if not self.is_locked:
            return

        if self._mutex:
            import ctypes

            ctypes.WinDLL("kernel32", use_last_error=True).CloseHandle(self._mutex)
            self._mutex = None

        if self._lockfile:
            self._lockfile.close()
            self._lockfile = None
            try:
                self.lockfile_path.unlink()
            except FileNotFoundError:
                pass

        self.is_locked = False

    def __enter__(self) -> "SingleInstance":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self):
        try:
            self.release()
        except Exception:
            pass


def ensure_single_instance(app_name: str = "GameGuard") -> Optional[SingleInstance]:
    """
    Acquire the instance lock.

    Returns:
        SingleInstance object if successful, None if another instance is running
    """
    instance = SingleInstance(app_name)
    if instance.is_already_running():
        return None
    return instance
