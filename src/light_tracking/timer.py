"""In-memory timer state backed by the time slot store."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .db import TimeSlotStore
from .errors import ValidationError
from .models import TimeSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TimerStatus:
    """Immutable snapshot handed to pollers and the presentation layer."""

    is_running: bool
    task_name: Optional[str] = None
    slot_id: Optional[int] = None
    start_time: Optional[datetime] = None
    elapsed: timedelta = timedelta(0)

    @property
    def elapsed_seconds(self) -> int:
        return int(self.elapsed.total_seconds())


class Timer:
    """Two-state machine: idle, or running against exactly one active slot.

    ``clock`` supplies wall-clock instants written to the store; ``monotonic``
    drives ``elapsed()`` so that the reading never depends on storage or on
    wall-clock adjustments after the anchor is set.
    """

    def __init__(
        self,
        store: TimeSlotStore,
        *,
        clock: Callable[[], datetime] = datetime.now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._clock = clock
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._active: Optional[TimeSlot] = None
        self._anchor: float = 0.0

    def start(self, task_name: str) -> TimeSlot:
        """Begin tracking ``task_name``, closing any open slot at the same instant.

        The store, not the cached slot, decides what is open: another process
        sharing the database may have started or stopped a slot meanwhile.
        """
        if not task_name or not task_name.strip():
            raise ValidationError("task name must not be empty")
        with self._lock:
            now = self._clock()
            # A failed implicit stop aborts the start with the old slot still active.
            previous = self._close_open_slot(now)
            if previous is not None:
                logger.info(
                    "Stopped %r after %ss to start %r",
                    previous.task_name,
                    previous.duration_seconds,
                    task_name,
                )
                now = previous.end_time
            slot = self._store.create(task_name, now)
            self._set_running(slot, self._clock())
            logger.info("Started timer for %r (slot %s)", task_name, slot.id)
            return slot

    def stop(self) -> Optional[TimeSlot]:
        with self._lock:
            closed = self._close_open_slot(self._clock())
            if closed is None:
                return None
            logger.info(
                "Stopped timer for %r after %ss", closed.task_name, closed.duration_seconds
            )
            return closed

    def _close_open_slot(self, now: datetime) -> Optional[TimeSlot]:
        """Close the store's open slot, if any, and drop the cached one."""
        current = self._store.active()
        if current is None:
            if self._active is not None:
                logger.info("Slot %s was closed elsewhere; timer is idle.", self._active.id)
            self._set_idle()
            return None
        # The wall clock may have stepped back (DST, NTP) since the slot started.
        closed = self._store.close(current.id, max(now, current.start_time))
        self._set_idle()
        return closed

    def elapsed(self) -> timedelta:
        with self._lock:
            return self._elapsed_locked()

    def recover_from_store(self) -> Optional[TimeSlot]:
        """Adopt the store's active slot, if any, as the running slot."""
        with self._lock:
            slot = self._store.active()
            if slot is None:
                self._set_idle()
                return None
            self._set_running(slot, self._clock())
            logger.info(
                "Recovered active slot %s for %r started at %s",
                slot.id,
                slot.task_name,
                slot.start_time,
            )
            return slot

    def is_running(self) -> bool:
        with self._lock:
            return self._active is not None

    def active_task_name(self) -> Optional[str]:
        with self._lock:
            return self._active.task_name if self._active else None

    def active_slot(self) -> Optional[TimeSlot]:
        with self._lock:
            return self._active

    def status(self) -> TimerStatus:
        with self._lock:
            if self._active is None:
                return TimerStatus(is_running=False)
            return TimerStatus(
                is_running=True,
                task_name=self._active.task_name,
                slot_id=self._active.id,
                start_time=self._active.start_time,
                elapsed=self._elapsed_locked(),
            )

    def _set_running(self, slot: TimeSlot, now: datetime) -> None:
        # Back-date the monotonic anchor by however long the slot has already run.
        already = max((now - slot.start_time).total_seconds(), 0.0)
        self._anchor = self._monotonic() - already
        self._active = slot

    def _set_idle(self) -> None:
        self._active = None
        self._anchor = 0.0

    def _elapsed_locked(self) -> timedelta:
        if self._active is None:
            return timedelta(0)
        return timedelta(seconds=max(self._monotonic() - self._anchor, 0.0))
