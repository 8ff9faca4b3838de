"""
Common utilities shared across GameGuard modules.

WHY THIS EXISTS:
- The data directory is needed by the config manager, audit log, logger and tray
- Development mode toggles verbose logging for the whole process
- Process name normalization must be identical for enumeration and verification
"""

import os
import sys
from pathlib import Path


APP_NAME = "GameGuard"


def get_app_directory() -> Path:
    """
    Get application directory - works with both development and PyInstaller.

    WHY: Bundled assets (icon, alarm sound) live next to the code or executable.

    Returns:
        Path: Application directory path
    """
    if getattr(sys, "frozen", False):
        # Running as compiled executable
        return Path(sys.executable).parent
    else:
        # Running as script (repository layout: gameguard/ holds code, assets one level up)
        return Path(__file__).resolve().parent.parent


def get_data_directory() -> Path:
    """
    Get the per-user directory holding config.json and the logs.

    WHY: Config and logs must survive reinstalls and must not require write
    access to the install directory.
    GAMEGUARD_HOME overrides the location (used by tests and portable installs).

    Returns:
        Path: Data directory path (not created here)
    """
    override = os.environ.get("GAMEGUARD_HOME")
    if override:
        return Path(override)

    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_NAME

    return Path.home() / ".gameguard"


def is_development_mode() -> bool:
    """
    Check if application is running in development mode.

    WHY: Development mode turns on DEBUG logging so every tick is traceable.
    Reads from GAMEGUARD_ENV environment variable.

    Returns:
        bool: True if GAMEGUARD_ENV is set to 'DEVELOPMENT'
    """
    return os.environ.get("GAMEGUARD_ENV", "PRODUCTION").upper() == "DEVELOPMENT"


def normalize_process_name(name: str) -> str:
    """
    Lower-case a process or executable name and drop its extension.

    WHY: "Steam.exe", "steam.EXE" and "steam" all name the same target.
    Directory components are ignored so a full path can be passed too.
    """
    if not name:
        return ""
    base = os.path.basename(name.strip().replace("\\", "/"))
    stem, _ext = os.path.splitext(base)
    return (stem or base).lower()


def normalize_path(path: str) -> str:
    """
    Normalize an executable path for case-insensitive comparison.

    WHY: Paths are stored absolute and compared case-insensitively, matching
    how Windows resolves executables.
    """
    if not path:
        return ""
    return os.path.normcase(os.path.abspath(path.strip())).lower()
