"""Composition root wiring the store and timer for the CLI and web UI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .db import TimeSlotStore
from .models import TimeSlot
from .parsing import parse_date, parse_optional_timestamp, parse_timestamp
from .timer import Timer, TimerStatus

logger = logging.getLogger(__name__)


class Tracker:
    """Request/response operations offered to the presentation layer.

    Dates arrive as ``YYYY-MM-DD`` and timestamps as RFC3339 strings. Historical
    queries go straight to the store; only start/stop/status touch the timer.
    """

    def __init__(self, store: TimeSlotStore, timer: Timer) -> None:
        self.store = store
        self.timer = timer

    def start_timer(self, task_name: str) -> TimeSlot:
        return self.timer.start(task_name)

    def stop_timer(self) -> Optional[TimeSlot]:
        return self.timer.stop()

    def status(self) -> TimerStatus:
        return self.timer.status()

    def time_slots_for(self, date_str: Optional[str]) -> list[TimeSlot]:
        return self.store.by_date(parse_date(date_str))

    def all_time_slots(self) -> list[TimeSlot]:
        return self.store.all()

    def statistics_for(self, date_str: Optional[str]) -> list[tuple[str, int]]:
        """Per-task totals for the day, largest first."""
        totals = self.store.aggregate_by_task(parse_date(date_str))
        return sorted(totals.items(), key=lambda item: (-item[1], item[0]))

    def update_time_slot(
        self,
        slot_id: int,
        task_name: str,
        start_time: str,
        end_time: Optional[str] = None,
    ) -> TimeSlot:
        slot = self.store.update(
            slot_id,
            task_name,
            parse_timestamp(start_time),
            parse_optional_timestamp(end_time),
        )
        self._resync_timer()
        return slot

    def delete_time_slot(self, slot_id: int) -> None:
        self.store.delete(slot_id)
        self._resync_timer()

    def close(self) -> None:
        self.store.close_connection()

    def _resync_timer(self) -> None:
        # Manual edits may close, reopen, move or delete the active slot.
        self.timer.recover_from_store()


def build_tracker(db_path: Path) -> Tracker:
    """Open the database and restore any slot left running by a previous process."""
    store = TimeSlotStore.open(db_path)
    timer = Timer(store)
    try:
        timer.recover_from_store()
    except Exception:
        store.close_connection()
        raise
    logger.debug("Tracker ready using %s", db_path)
    return Tracker(store, timer)


@contextmanager
def open_tracker(db_path: Path) -> Iterator[Tracker]:
    tracker = build_tracker(db_path)
    try:
        yield tracker
    finally:
        tracker.close()
