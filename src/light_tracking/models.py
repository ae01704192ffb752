"""Domain models for tracked time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .parsing import format_timestamp


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from ``start`` to ``end``, truncated toward zero."""
    return int((end - start).total_seconds())


@dataclass(slots=True)
class TimeSlot:
    """A contiguous block of time spent on a single named task.

    A slot without ``end_time`` is active; its duration stays at zero until it
    is closed and is computed live by the timer in the meantime.
    """

    id: int
    task_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int = 0

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def calculate_duration(self) -> int:
        if self.end_time is None:
            self.duration_seconds = 0
        else:
            self.duration_seconds = seconds_between(self.start_time, self.end_time)
        return self.duration_seconds

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_name": self.task_name,
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time) if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "is_active": self.is_active,
        }
