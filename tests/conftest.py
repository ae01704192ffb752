"""Shared fixtures: a temporary store and a controllable clock."""

from datetime import datetime, timedelta

import pytest

from light_tracking.db import TimeSlotStore
from light_tracking.timer import Timer
from light_tracking.tracker import Tracker

T0 = datetime(2026, 10, 17, 9, 0, 0)


class FakeClock:
    """Wall clock and monotonic clock that only move when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start
        self.mono = 1000.0

    def now(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return self.mono

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)
        self.mono += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "slots.sqlite3"


@pytest.fixture
def store(db_path):
    store = TimeSlotStore.open(db_path)
    yield store
    store.close_connection()


@pytest.fixture
def timer(store, clock):
    return Timer(store, clock=clock.now, monotonic=clock.monotonic)


@pytest.fixture
def tracker(store, timer):
    return Tracker(store, timer)
