"""Tests for the timer state machine."""

import threading
from datetime import datetime, timedelta

import pytest

from light_tracking.db import TimeSlotStore
from light_tracking.errors import StorageError, ValidationError
from light_tracking.timer import Timer

T0 = datetime(2026, 10, 17, 9, 0, 0)


def active_count(store):
    return sum(1 for slot in store.all() if slot.is_active)


class FailingCloseStore(TimeSlotStore):
    """Store whose ``close`` always fails, as a broken disk would."""

    def close(self, slot_id, end_time):
        raise StorageError("disk full")


class TestStartStop:
    """Starting and stopping the timer."""

    def test_stop_after_an_hour(self, timer, clock):
        timer.start("writing")
        clock.advance(3600)

        slot = timer.stop()

        assert slot.task_name == "writing"
        assert slot.start_time == T0
        assert slot.end_time == T0 + timedelta(seconds=3600)
        assert slot.duration_seconds == 3600
        assert not timer.is_running()

    def test_start_while_running_closes_previous_at_same_instant(self, timer, store, clock):
        a = timer.start("A")
        clock.advance(600)

        b = timer.start("B")

        closed_a = store.get(a.id)
        assert closed_a.end_time == T0 + timedelta(seconds=600)
        assert closed_a.end_time == b.start_time
        assert closed_a.duration_seconds == 600
        assert store.active().id == b.id
        assert timer.active_task_name() == "B"

    def test_stop_when_idle_is_noop(self, timer, store):
        assert timer.stop() is None
        assert not timer.is_running()
        assert store.all() == []

    def test_empty_task_name_rejected(self, timer, store):
        with pytest.raises(ValidationError):
            timer.start("")
        assert store.all() == []

    def test_at_most_one_active_slot_across_sequence(self, timer, store, clock):
        for step, action in enumerate(["a", "b", None, None, "c", "c", None, "d"]):
            clock.advance(30 + step)
            if action is None:
                timer.stop()
            else:
                timer.start(action)
            assert active_count(store) <= 1
            assert timer.is_running() == (active_count(store) == 1)

    def test_concurrent_starts_keep_single_active_slot(self, store):
        timer = Timer(store)
        barrier = threading.Barrier(8)

        def worker(index):
            barrier.wait()
            timer.start(f"task-{index}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert active_count(store) == 1
        assert len(store.all()) == 8
        assert store.active().id == timer.active_slot().id


class TestImplicitStopFailure:
    """A failed implicit stop aborts the new start."""

    def test_previous_slot_stays_active(self, db_path, clock):
        healthy = TimeSlotStore.open(db_path)
        first = healthy.create("A", T0)
        healthy.close_connection()

        store = FailingCloseStore.open(db_path)
        try:
            timer = Timer(store, clock=clock.now, monotonic=clock.monotonic)
            timer.recover_from_store()
            clock.advance(60)

            with pytest.raises(StorageError):
                timer.start("B")

            assert timer.active_slot().id == first.id
            assert [slot.task_name for slot in store.all()] == ["A"]
            assert store.active().id == first.id
        finally:
            store.close_connection()

    def test_failed_stop_keeps_running(self, db_path, clock):
        store = FailingCloseStore.open(db_path)
        try:
            timer = Timer(store, clock=clock.now, monotonic=clock.monotonic)
            timer.start("A")

            with pytest.raises(StorageError):
                timer.stop()

            assert timer.is_running()
        finally:
            store.close_connection()


class TestSharedDatabase:
    """Two timers on one database file, as with the CLI next to the dashboard."""

    @pytest.fixture
    def other_timer(self, db_path, clock):
        other_store = TimeSlotStore.open(db_path)
        yield Timer(other_store, clock=clock.now, monotonic=clock.monotonic)
        other_store.close_connection()

    def test_starts_from_both_sides_keep_one_active_slot(self, timer, other_timer, store, clock):
        a = timer.start("A")
        clock.advance(60)
        b = other_timer.start("B")
        clock.advance(60)
        c = timer.start("C")

        assert active_count(store) == 1
        assert store.get(a.id).end_time == b.start_time
        assert store.get(b.id).end_time == c.start_time
        assert store.active().id == c.id

    def test_stop_after_slot_was_stopped_elsewhere(self, timer, other_timer, store, clock):
        slot = timer.start("A")
        clock.advance(300)
        other_timer.stop()
        clock.advance(300)

        assert timer.stop() is None
        assert not timer.is_running()
        assert store.get(slot.id).duration_seconds == 300

    def test_start_after_slot_was_stopped_elsewhere(self, timer, other_timer, store, clock):
        timer.start("A")
        other_timer.stop()
        clock.advance(60)

        b = timer.start("B")

        assert store.active().id == b.id
        assert timer.active_slot().id == b.id

    def test_start_after_slot_was_deleted_elsewhere(self, timer, db_path, store, clock):
        slot = timer.start("A")
        other_store = TimeSlotStore.open(db_path)
        try:
            other_store.delete(slot.id)
        finally:
            other_store.close_connection()

        b = timer.start("B")

        assert [s.id for s in store.all()] == [b.id]
        assert timer.active_task_name() == "B"


class TestWallClockSteppedBack:
    """Closing instants never precede the slot's start."""

    def test_stop_clamps_end_to_start(self, timer, store, clock):
        slot = timer.start("writing")
        clock.advance(30)
        clock.current -= timedelta(hours=1)

        closed = timer.stop()

        assert closed.end_time == slot.start_time
        assert closed.duration_seconds == 0
        assert store.active() is None
        assert not timer.is_running()

    def test_switch_clamps_and_stays_contiguous(self, timer, store, clock):
        a = timer.start("A")
        clock.current -= timedelta(minutes=10)

        b = timer.start("B")

        assert store.get(a.id).end_time == a.start_time
        assert b.start_time == a.start_time
        assert store.active().id == b.id


class TestElapsed:
    """Elapsed time comes from the monotonic clock."""

    def test_zero_when_idle(self, timer):
        assert timer.elapsed() == timedelta(0)

    def test_counts_while_running(self, timer, clock):
        timer.start("writing")
        clock.advance(90)

        assert timer.elapsed() == timedelta(seconds=90)

    def test_ignores_wall_clock_jumps(self, timer, clock):
        timer.start("writing")
        clock.advance(60)
        clock.current -= timedelta(hours=1)

        assert timer.elapsed() == timedelta(seconds=60)

    def test_resets_after_stop(self, timer, clock):
        timer.start("writing")
        clock.advance(60)
        timer.stop()

        assert timer.elapsed() == timedelta(0)


class TestRecovery:
    """Restoring a running slot after a restart."""

    def test_recovered_elapsed_spans_restart(self, store, clock):
        store.create("writing", T0)
        clock.advance(120)

        timer = Timer(store, clock=clock.now, monotonic=clock.monotonic)
        recovered = timer.recover_from_store()

        assert recovered.task_name == "writing"
        assert timer.is_running()
        assert timer.elapsed() == timedelta(seconds=120)
        clock.advance(30)
        assert timer.elapsed() == timedelta(seconds=150)

    def test_recovered_slot_stops_with_full_duration(self, store, clock):
        slot = store.create("writing", T0)
        clock.advance(120)
        timer = Timer(store, clock=clock.now, monotonic=clock.monotonic)
        timer.recover_from_store()
        clock.advance(60)

        closed = timer.stop()

        assert closed.id == slot.id
        assert closed.duration_seconds == 180

    def test_idle_when_nothing_active(self, store, clock):
        done = store.create("writing", T0)
        store.close(done.id, T0 + timedelta(minutes=5))

        timer = Timer(store, clock=clock.now, monotonic=clock.monotonic)

        assert timer.recover_from_store() is None
        assert not timer.is_running()


class TestStatus:
    def test_snapshot_while_running(self, timer, clock):
        slot = timer.start("writing")
        clock.advance(75)

        status = timer.status()

        assert status.is_running
        assert status.task_name == "writing"
        assert status.slot_id == slot.id
        assert status.start_time == T0
        assert status.elapsed_seconds == 75

    def test_snapshot_when_idle(self, timer):
        status = timer.status()

        assert not status.is_running
        assert status.task_name is None
        assert status.elapsed_seconds == 0
