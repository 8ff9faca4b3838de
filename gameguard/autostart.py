"""
Windows autostart functionality for GameGuard
Manages the HKCU Run registry entry that starts GameGuard at logon
"""

import logging
import sys
from pathlib import Path

if sys.platform == "win32":
    import winreg
else:
    winreg = None

from .common import APP_NAME  # noqa: E402

logger = logging.getLogger(__name__)


class AutostartManager:
    """Manages Windows autostart functionality through registry"""

    REGISTRY_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
    APP_NAME = APP_NAME

    @property
    def is_supported(self) -> bool:
        return winreg is not None

    def get_launch_command(self) -> str:
        """Command line stored in the Run key"""
        if getattr(sys, "frozen", False):
            # Running as compiled executable
            return f'"{sys.executable}"'

        # Prefer the console-less interpreter next to the current one
        interpreter = Path(sys.executable)
        pythonw = interpreter.with_name("pythonw.exe")
        if pythonw.exists():
            interpreter = pythonw
        return f'"{interpreter}" -m gameguard'

    def is_autostart_enabled(self) -> bool:
        """Check if autostart is currently enabled"""
        if not self.is_supported:
            return False
        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, self.REGISTRY_KEY) as key:
                try:
                    value, _ = winreg.QueryValueEx(key, self.APP_NAME)
                    return isinstance(value, str)
                except FileNotFoundError:
                    return False
        except OSError as e:
            logger.warning("Error checking autostart status: %s", e)
            return False

    def enable_autostart(self) -> bool:
        """Enable autostart by adding registry entry"""
        if not self.is_supported:
            return False
        try:
            command = self.get_launch_command()
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.REGISTRY_KEY, 0, winreg.KEY_SET_VALUE
            ) as key:
                winreg.SetValueEx(key, self.APP_NAME, 0, winreg.REG_SZ, command)
            logger.info("Autostart enabled: %s", command)
            return True
        except OSError as e:
            logger.error("Error enabling autostart: %s", e)
            return False

    def disable_autostart(self) -> bool:
        """Disable autostart by removing registry entry"""
        if not self.is_supported:
            return False
        try:
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.REGISTRY_KEY, 0, winreg.KEY_SET_VALUE
            ) as key:
                try:
                    winreg.DeleteValue(key, self.APP_NAME)
                    logger.info("Autostart disabled")
                except FileNotFoundError:
                    # Entry doesn't exist, consider it successful
                    logger.info("Autostart entry not found (already disabled)")
                return True
        except OSError as e:
            logger.error("Error disabling autostart: %s", e)
            return False

    def set_autostart(self, enabled: bool) -> bool:
        """Enable or disable autostart based on boolean value"""
        if enabled:
            return self.enable_autostart()
        return self.disable_autostart()

    def toggle(self) -> bool:
        """Flip the current state; returns the state now in effect."""
        target = not self.is_autostart_enabled()
        if self.set_autostart(target):
            return target
        return not target

