"""Desktop notifications dispatched through the platform's own notifier."""

from __future__ import annotations

import logging
import subprocess
import sys
from datetime import timedelta

logger = logging.getLogger(__name__)

APP_TITLE = "Light Tracking"


class DesktopNotifier:
    """Shell out to notify-send, osascript or PowerShell depending on the OS."""

    def __init__(self, platform: str | None = None, timeout: float = 10.0) -> None:
        self.platform = platform or sys.platform
        self.timeout = timeout

    def send(self, title: str, message: str) -> bool:
        try:
            if self.platform.startswith("linux"):
                return self._send_linux(title, message)
            if self.platform == "darwin":
                self._run(["osascript", "-e", _applescript(title, message)])
                return True
            if self.platform.startswith("win"):
                self._run(["powershell", "-NoProfile", "-Command", _toast_script(title, message)])
                return True
        except (OSError, subprocess.SubprocessError):
            logger.exception("Failed to send desktop notification %r", title)
            return False
        logger.debug("Desktop notifications unsupported on %s", self.platform)
        return False

    def _send_linux(self, title: str, message: str) -> bool:
        try:
            self._run(["notify-send", title, message, f"--app-name={APP_TITLE}"])
            return True
        except (OSError, subprocess.SubprocessError):
            logger.debug("notify-send unavailable; falling back to dbus-send")
        self._run(
            [
                "dbus-send",
                "--type=method_call",
                "--dest=org.freedesktop.Notifications",
                "/org/freedesktop/Notifications",
                "org.freedesktop.Notifications.Notify",
                f"string:{APP_TITLE}",
                "uint32:0",
                "string:",
                f"string:{title}",
                f"string:{message}",
                "array:string:",
                "dict:string:string:",
                "int32:5000",
            ]
        )
        return True

    def _run(self, command: list[str]) -> None:
        subprocess.run(command, check=True, capture_output=True, timeout=self.timeout)


def _applescript(title: str, message: str) -> str:
    return f"display notification {_quote(message)} with title {_quote(title)}"


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _toast_script(title: str, message: str) -> str:
    title = _xml_escape(title).replace("'", "''")
    message = _xml_escape(message).replace("'", "''")
    return (
        "[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, "
        "ContentType = WindowsRuntime] | Out-Null; "
        "[Windows.Data.Xml.Dom.XmlDocument, Windows.Data.Xml.Dom.XmlDocument, "
        "ContentType = WindowsRuntime] | Out-Null; "
        "$xml = [Windows.Data.Xml.Dom.XmlDocument]::new(); "
        "$xml.LoadXml('<toast><visual><binding template=\"ToastText02\">"
        f"<text id=\"1\">{title}</text><text id=\"2\">{message}</text>"
        "</binding></visual></toast>'); "
        "$toast = [Windows.UI.Notifications.ToastNotification]::new($xml); "
        f"[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier('{APP_TITLE}').Show($toast)"
    )


def _xml_escape(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def format_duration_words(duration: timedelta) -> str:
    """Render a duration as e.g. ``"2 hours and 5 minutes"``."""
    total_minutes = int(duration.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        if minutes > 0:
            return f"{_plural(hours, 'hour')} and {_plural(minutes, 'minute')}"
        return _plural(hours, "hour")
    return _plural(minutes, "minute")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
