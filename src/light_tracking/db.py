"""SQLite record store for time slots."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterator, Optional

from .errors import NotFoundError, StorageError, ValidationError
from .models import TimeSlot, seconds_between

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

_SLOT_COLUMNS = "id, task_name, start_time, end_time, duration_seconds"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            path,
            isolation_level=None,
            check_same_thread=check_same_thread,
        )
    except (OSError, sqlite3.Error) as exc:
        raise StorageError(f"failed to open database at {path}: {exc}") from exc
    conn.row_factory = sqlite3.Row
    try:
        initialize_schema(conn)
    except sqlite3.Error as exc:
        conn.close()
        raise StorageError(f"failed to initialize schema: {exc}") from exc
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS time_slots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_name TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT,
            duration_seconds INTEGER NOT NULL DEFAULT 0
        );

        CREATE INDEX IF NOT EXISTS idx_slots_start_time
            ON time_slots(start_time);
        CREATE INDEX IF NOT EXISTS idx_slots_task_name
            ON time_slots(task_name);
        """
    )


def day_window(day: date) -> tuple[str, str]:
    """Return the local ``[midnight, next midnight)`` bounds for ``day``."""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    return start.strftime(DATETIME_FMT), end.strftime(DATETIME_FMT)


def _format(value: datetime) -> str:
    return value.strftime(DATETIME_FMT)


def _row_to_slot(row: sqlite3.Row) -> TimeSlot:
    end_time = row["end_time"]
    return TimeSlot(
        id=row["id"],
        task_name=row["task_name"],
        start_time=datetime.strptime(row["start_time"], DATETIME_FMT),
        end_time=datetime.strptime(end_time, DATETIME_FMT) if end_time else None,
        duration_seconds=int(row["duration_seconds"] or 0),
    )


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Storage failure while trying to %s: %s", action, exc)
        raise StorageError(f"failed to {action}: {exc}") from exc


class TimeSlotStore:
    """Durable table of time slots.

    One connection is shared by the web worker threads and the timer, so every
    statement runs under ``self._lock``. Each mutation is a single statement;
    there are no multi-statement transactions.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path) -> "TimeSlotStore":
        return cls(open_database(path, check_same_thread=False))

    def close_connection(self) -> None:
        with self._lock:
            self._conn.close()

    def create(self, task_name: str, start_time: datetime) -> TimeSlot:
        """Insert an open slot; refused while any other slot is still open.

        The check and the insert are one statement, so two processes sharing
        the database file cannot both open a slot.
        """
        if not task_name or not task_name.strip():
            raise ValidationError("task name must not be empty")
        with self._lock, _storage_errors("create time slot"):
            cur = self._conn.execute(
                """
                INSERT INTO time_slots (task_name, start_time)
                SELECT ?, ?
                WHERE NOT EXISTS (SELECT 1 FROM time_slots WHERE end_time IS NULL)
                """,
                (task_name, _format(start_time)),
            )
            if cur.rowcount == 0:
                raise ValidationError("another time slot is already active")
            slot_id = cur.lastrowid
        logger.debug("Created time slot %s for %r", slot_id, task_name)
        return TimeSlot(id=slot_id, task_name=task_name, start_time=start_time)

    def close(self, slot_id: int, end_time: datetime) -> TimeSlot:
        """Set ``end_time`` on an active slot and store its duration.

        Closing a slot that is already closed raises ``ValidationError``
        instead of overwriting the recorded end time.
        """
        with self._lock:
            slot = self._get_locked(slot_id)
            if not slot.is_active:
                raise ValidationError(f"time slot {slot_id} is already closed")
            if end_time < slot.start_time:
                raise ValidationError("end_time must not be before start_time")
            duration = seconds_between(slot.start_time, end_time)
            with _storage_errors("close time slot"):
                cur = self._conn.execute(
                    """
                    UPDATE time_slots
                    SET end_time = ?, duration_seconds = ?
                    WHERE id = ? AND end_time IS NULL
                    """,
                    (_format(end_time), duration, slot_id),
                )
            if cur.rowcount == 0:
                raise NotFoundError(f"No active time slot found for id={slot_id}")
        slot.end_time = end_time
        slot.duration_seconds = duration
        logger.debug("Closed time slot %s after %ss", slot_id, duration)
        return slot

    def active(self) -> Optional[TimeSlot]:
        with self._lock, _storage_errors("load active time slot"):
            row = self._conn.execute(
                f"""
                SELECT {_SLOT_COLUMNS}
                FROM time_slots
                WHERE end_time IS NULL
                ORDER BY start_time DESC, id DESC
                LIMIT 1
                """
            ).fetchone()
        return _row_to_slot(row) if row else None

    def get(self, slot_id: int) -> TimeSlot:
        with self._lock:
            return self._get_locked(slot_id)

    def _get_locked(self, slot_id: int) -> TimeSlot:
        with _storage_errors("load time slot"):
            row = self._conn.execute(
                f"SELECT {_SLOT_COLUMNS} FROM time_slots WHERE id = ?",
                (slot_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"No time slot found for id={slot_id}")
        return _row_to_slot(row)

    def by_date(self, day: date) -> list[TimeSlot]:
        """Slots starting within the local day window, oldest first."""
        start, end = day_window(day)
        with self._lock, _storage_errors("query time slots"):
            rows = self._conn.execute(
                f"""
                SELECT {_SLOT_COLUMNS}
                FROM time_slots
                WHERE start_time >= ? AND start_time < ?
                ORDER BY start_time ASC, id ASC
                """,
                (start, end),
            ).fetchall()
        return [_row_to_slot(row) for row in rows]

    def aggregate_by_task(self, day: date) -> dict[str, int]:
        """Total closed seconds per exact task name within the day window."""
        start, end = day_window(day)
        with self._lock, _storage_errors("query task statistics"):
            rows = self._conn.execute(
                """
                SELECT task_name, SUM(duration_seconds) AS total_seconds
                FROM time_slots
                WHERE start_time >= ? AND start_time < ? AND end_time IS NOT NULL
                GROUP BY task_name
                """,
                (start, end),
            ).fetchall()
        return {row["task_name"]: int(row["total_seconds"] or 0) for row in rows}

    def update(
        self,
        slot_id: int,
        task_name: str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
    ) -> TimeSlot:
        """Overwrite every mutable field and recompute the duration."""
        if not task_name or not task_name.strip():
            raise ValidationError("task name must not be empty")
        if end_time is not None and end_time <= start_time:
            raise ValidationError("end_time must be after start_time")
        slot = TimeSlot(
            id=slot_id, task_name=task_name, start_time=start_time, end_time=end_time
        )
        slot.calculate_duration()

        with self._lock:
            if end_time is None:
                with _storage_errors("check active time slots"):
                    other = self._conn.execute(
                        "SELECT id FROM time_slots WHERE end_time IS NULL AND id != ?",
                        (slot_id,),
                    ).fetchone()
                if other is not None:
                    raise ValidationError(
                        f"time slot {other['id']} is already active; "
                        "only one slot may be open"
                    )
            with _storage_errors("update time slot"):
                cur = self._conn.execute(
                    """
                    UPDATE time_slots
                    SET task_name = ?, start_time = ?, end_time = ?, duration_seconds = ?
                    WHERE id = ?
                    """,
                    (
                        task_name,
                        _format(start_time),
                        _format(end_time) if end_time else None,
                        slot.duration_seconds,
                        slot_id,
                    ),
                )
        if cur.rowcount == 0:
            raise NotFoundError(f"No time slot found for id={slot_id}")
        logger.debug("Updated time slot %s", slot_id)
        return slot

    def delete(self, slot_id: int) -> None:
        with self._lock, _storage_errors("delete time slot"):
            cur = self._conn.execute("DELETE FROM time_slots WHERE id = ?", (slot_id,))
        if cur.rowcount == 0:
            raise NotFoundError(f"No time slot found for id={slot_id}")
        logger.debug("Deleted time slot %s", slot_id)

    def all(self) -> list[TimeSlot]:
        with self._lock, _storage_errors("query all time slots"):
            rows = self._conn.execute(
                f"SELECT {_SLOT_COLUMNS} FROM time_slots ORDER BY start_time DESC, id DESC"
            ).fetchall()
        return [_row_to_slot(row) for row in rows]
