"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from .models import TimeSlot
from .tracker import Tracker


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, tracker: Tracker) -> None:
        self.tracker = tracker

    def print_daily_summary(self, day: date) -> None:
        day_str = day.strftime("%Y-%m-%d")
        slots = self.tracker.time_slots_for(day_str)
        if not slots:
            print("No time slots recorded for the selected day.")
            return

        totals = self.tracker.statistics_for(day_str)
        print(f"Summary for {day_str}")
        print("-" * 40)
        print(f"Tracked time: {format_duration(sum(seconds for _, seconds in totals))}")
        print()

        if totals:
            print("By task:")
            for task_name, seconds in totals:
                print(f"  {task_name[:30]:<30} {format_duration(seconds)}")
            print()

        print("Time slots:")
        for line in slot_lines(slots):
            print(f"  {line}")


def slot_lines(slots: Iterable[TimeSlot], *, with_date: bool = False) -> list[str]:
    start_fmt = "%Y-%m-%d %H:%M:%S" if with_date else "%H:%M:%S"
    lines = []
    for slot in slots:
        start = slot.start_time.strftime(start_fmt)
        if slot.is_active:
            end, duration = "running ", "--:--:--"
        else:
            end = slot.end_time.strftime("%H:%M:%S")
            duration = format_duration(slot.duration_seconds)
        lines.append(f"#{slot.id:<5} {start} - {end} {duration}  {slot.task_name}")
    return lines


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
