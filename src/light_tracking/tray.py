"""System tray indicator built on pystray."""

from __future__ import annotations

import logging
import threading
import webbrowser
from pathlib import Path
from typing import Any, Callable, Optional

from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

ICON_SIZE = 32
ACTIVE_COLOR = (76, 175, 80, 255)
INACTIVE_COLOR = (100, 100, 100, 255)


def create_default_icon(active: bool, size: int = ICON_SIZE) -> Image.Image:
    """Filled green circle while tracking, grey outline while idle."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    margin = size // 8
    box = (margin, margin, size - margin - 1, size - margin - 1)
    if active:
        draw.ellipse(box, fill=ACTIVE_COLOR)
    else:
        draw.ellipse(box, outline=INACTIVE_COLOR, width=max(size // 16, 2))
    return image


def load_icons(icon_dir: Optional[Path] = None) -> tuple[Image.Image, Image.Image]:
    """Return ``(active, inactive)`` images, preferring PNGs in ``icon_dir``."""
    if icon_dir is not None:
        active_path = Path(icon_dir) / "icon-active.png"
        inactive_path = Path(icon_dir) / "icon-inactive.png"
        if active_path.exists() and inactive_path.exists():
            try:
                return Image.open(active_path), Image.open(inactive_path)
            except OSError:
                logger.warning("Could not read tray icons from %s; using defaults.", icon_dir)
    return create_default_icon(True), create_default_icon(False)


class PystrayIndicator:
    """Tray icon whose image and status line follow the ``TrayMonitor``."""

    def __init__(
        self,
        *,
        on_stop: Callable[[], Any],
        dashboard_url: Optional[str] = None,
        on_quit: Optional[Callable[[], Any]] = None,
        icon_dir: Optional[Path] = None,
    ) -> None:
        self._on_stop = on_stop
        self._on_quit = on_quit
        self._dashboard_url = dashboard_url
        self._icon_active, self._icon_inactive = load_icons(icon_dir)
        self._status = "Not tracking"
        self._lock = threading.Lock()
        self._icon: Any = None

    def run_detached(self) -> None:
        import pystray

        menu = pystray.Menu(
            pystray.MenuItem(lambda item: self._status, lambda icon, item: None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Stop timer", self._handle_stop),
            pystray.MenuItem(
                "Open dashboard",
                self._handle_open,
                visible=lambda item: self._dashboard_url is not None,
            ),
            pystray.MenuItem("Quit", self._handle_quit),
        )
        with self._lock:
            self._icon = pystray.Icon(
                "light_tracking", self._icon_inactive, "Light Tracking", menu
            )
            self._icon.run_detached()
        logger.info("System tray icon started.")

    def set_icon(self, active: bool) -> None:
        with self._lock:
            if self._icon is not None:
                self._icon.icon = self._icon_active if active else self._icon_inactive

    def set_status(self, text: str) -> None:
        with self._lock:
            self._status = text
            if self._icon is not None:
                self._icon.title = text
                self._icon.update_menu()

    def shutdown(self) -> None:
        with self._lock:
            icon, self._icon = self._icon, None
        if icon is not None:
            icon.stop()

    def _handle_stop(self, icon: Any, item: Any) -> None:
        try:
            self._on_stop()
        except Exception:
            logger.exception("Failed to stop timer from tray menu.")

    def _handle_open(self, icon: Any, item: Any) -> None:
        if self._dashboard_url:
            webbrowser.open(self._dashboard_url)

    def _handle_quit(self, icon: Any, item: Any) -> None:
        self.shutdown()
        if self._on_quit is not None:
            self._on_quit()
