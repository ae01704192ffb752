"""Configuration models and helpers for the background monitors."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(slots=True)
class MonitorSettings:
    """Polling cadence and thresholds for the tray and long-session monitors."""

    tray_interval: timedelta = timedelta(seconds=1)
    notify_interval: timedelta = timedelta(minutes=5)
    long_session_threshold: timedelta = timedelta(hours=2)
    alert_cooldown: timedelta = timedelta(hours=2)

    @classmethod
    def from_intervals(
        cls,
        tray_seconds: float = 1.0,
        notify_minutes: float = 5.0,
        long_session_hours: float = 2.0,
        cooldown_hours: float | None = None,
    ) -> "MonitorSettings":
        cooldown = cooldown_hours if cooldown_hours is not None else long_session_hours
        return cls(
            tray_interval=timedelta(seconds=tray_seconds),
            notify_interval=timedelta(minutes=notify_minutes),
            long_session_threshold=timedelta(hours=long_session_hours),
            alert_cooldown=timedelta(hours=cooldown),
        )
