"""Background pollers that watch the timer: long-session alerts and the tray."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Optional, Protocol

from .config import MonitorSettings
from .notifications import DesktopNotifier, format_duration_words
from .reporting import format_duration
from .timer import Timer, TimerStatus

logger = logging.getLogger(__name__)


class PollingMonitor:
    """Run ``poll_once`` on a daemon thread every ``interval`` until stopped.

    Pollers only read immutable ``TimerStatus`` snapshots; a stale read is
    corrected on the next tick.
    """

    name = "monitor"

    def __init__(self, timer: Timer, interval: timedelta) -> None:
        self.timer = timer
        self.interval = interval
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self.run_until_stopped,
                args=(stop_event,),
                name=f"light-tracking-{self.name}",
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("%s monitor started.", self.name.capitalize())

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("%s monitor stopped.", self.name.capitalize())

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        interval = self.interval.total_seconds()
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("%s monitor poll failed; retrying next tick.", self.name)
            stop_event.wait(interval)

    def poll_once(self) -> None:
        raise NotImplementedError


class Notifier(Protocol):
    def send(self, title: str, message: str) -> bool: ...


class NotificationMonitor(PollingMonitor):
    """Alert the user when a single session runs past the long-session threshold."""

    name = "notification"

    def __init__(
        self,
        timer: Timer,
        settings: Optional[MonitorSettings] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or MonitorSettings()
        super().__init__(timer, settings.notify_interval)
        self.threshold = settings.long_session_threshold
        self.cooldown = settings.alert_cooldown
        self.notifier = notifier or DesktopNotifier()
        self._clock = clock
        self.last_alert_at: Optional[float] = None

    def poll_once(self) -> bool:
        status = self.timer.status()
        if not status.is_running or status.elapsed < self.threshold:
            return False
        now = self._clock()
        if (
            self.last_alert_at is not None
            and now - self.last_alert_at < self.cooldown.total_seconds()
        ):
            return False
        self.notifier.send(
            "Long Session Alert",
            f"You've been working on '{status.task_name}' for "
            f"{format_duration_words(status.elapsed)}",
        )
        self.last_alert_at = now
        logger.info("Sent long-session alert for %r", status.task_name)
        return True


class TrayIndicator(Protocol):
    def set_icon(self, active: bool) -> None: ...

    def set_status(self, text: str) -> None: ...


def status_text(status: TimerStatus) -> str:
    if not status.is_running:
        return "Not tracking"
    return f"Tracking: {status.task_name} ({format_duration(status.elapsed_seconds)})"


class TrayMonitor(PollingMonitor):
    """Keep the tray icon and status line in step with the timer."""

    name = "tray"

    def __init__(
        self,
        timer: Timer,
        indicator: TrayIndicator,
        settings: Optional[MonitorSettings] = None,
    ) -> None:
        settings = settings or MonitorSettings()
        super().__init__(timer, settings.tray_interval)
        self.indicator = indicator
        self._last_active: Optional[bool] = None
        self._last_text: Optional[str] = None

    def poll_once(self) -> None:
        status = self.timer.status()
        if status.is_running != self._last_active:
            self.indicator.set_icon(status.is_running)
            self._last_active = status.is_running
        text = status_text(status)
        if text != self._last_text:
            self.indicator.set_status(text)
            self._last_text = text
