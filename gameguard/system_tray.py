"""
System tray functionality for GameGuard
Provides the tray icon, its context menu and the enforcement-state colour
"""

import logging

from PIL import Image, ImageDraw

from .common import APP_NAME

logger = logging.getLogger(__name__)

COLOR_IDLE = "blue"
COLOR_ENFORCING = "red"
ICON_SIZE = 64


class SystemTrayManager:
    """
    Manages system tray icon and functionality.

    The owning application must provide: app_dir, autostart, open_settings(),
    show_status(), open_log_folder() and quit().
    """

    def __init__(self, app):
        self.app = app
        self.icon = None
        self.is_running = False
        self.enforcing = False

    def create_icon_image(self, color=COLOR_IDLE):
        """Create a simple shield-like icon image for the tray"""
        width = ICON_SIZE
        height = ICON_SIZE
        image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(image)

        margin = 8
        draw.ellipse(
            [margin, margin, width - margin, height - margin],
            fill=color,
            outline="white",
            width=2,
        )
        draw.text((width // 2 - 8, height // 2 - 8), "GG", fill="white")
        return image

    def load_icon_file(self):
        """Return assets/icon.ico as a tray-sized RGBA image, or None"""
        icon_path = self.app.app_dir / "assets" / "icon.ico"
        if not icon_path.exists():
            return None
        try:
            with Image.open(icon_path) as image:
                return image.convert("RGBA").resize((ICON_SIZE, ICON_SIZE))
        except OSError as e:
            logger.warning("Could not load icon from file: %s", e)
            return None

    def get_icon_image(self):
        """
        Icon for the current state.

        A custom assets/icon.ico keeps its look and gets a red badge during
        blocked time; without one the drawn icon changes colour.
        """
        image = self.load_icon_file()
        if image is None:
            return self.create_icon_image(COLOR_ENFORCING if self.enforcing else COLOR_IDLE)
        if self.enforcing:
            draw = ImageDraw.Draw(image)
            draw.ellipse([40, 40, ICON_SIZE - 2, ICON_SIZE - 2], fill=COLOR_ENFORCING)
        return image

    # --- Menu actions ---

    def open_settings(self, icon=None, item=None):
        self.app.open_settings()

    def show_status(self, icon=None, item=None):
        self.app.show_status()

    def open_log_folder(self, icon=None, item=None):
        self.app.open_log_folder()

    def toggle_autostart(self, icon=None, item=None):
        enabled = self.app.autostart.toggle()
        logger.info("Start with Windows: %s", "on" if enabled else "off")
        self.update_menu()

    def is_autostart_checked(self, item=None):
        return self.app.autostart.is_autostart_enabled()

    def quit_application(self, icon=None, item=None):
        self.app.quit()

    def get_menu_items(self):
        """Create context menu items"""
        import pystray

        return (
            pystray.MenuItem("Open Settings", self.open_settings, default=True),
            pystray.MenuItem("Status", self.show_status),
            pystray.MenuItem("Open Log Folder", self.open_log_folder),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(
                "Start with Windows",
                self.toggle_autostart,
                checked=self.is_autostart_checked,
                enabled=self.app.autostart.is_supported,
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Exit", self.quit_application),
        )

    def update_menu(self):
        """Rebuild the tray menu (called when autostart state changes)"""
        if self.icon:
            import pystray

            self.icon.menu = pystray.Menu(*self.get_menu_items())

    def set_enforcing(self, enforcing: bool):
        """Recolour the icon when blocked time starts or ends"""
        if enforcing == self.enforcing:
            return
        self.enforcing = enforcing
        if self.icon:
            self.icon.icon = self.get_icon_image()
            self.icon.title = f"{APP_NAME} — blocked time" if enforcing else APP_NAME

    # --- Lifecycle ---

    def _create_icon(self):
        import pystray

        return pystray.Icon(
            APP_NAME,
            self.get_icon_image(),
            APP_NAME,
            pystray.Menu(*self.get_menu_items()),
        )

    def run(self):
        """Run the tray icon on the calling thread until stop_tray() is called"""
        self.icon = self._create_icon()
        self.is_running = True
        try:
            self.icon.run()
        finally:
            self.is_running = False

    def stop_tray(self):
        """Stop the system tray icon"""
        if self.icon and self.is_running:
            self.icon.stop()
            self.is_running = False
            logger.info("System tray stopped")


def is_tray_supported():
    """Check if a tray backend can be loaded on this system"""
    try:
        import pystray  # noqa: F401
    except Exception:
        return False
    return True
