from __future__ import annotations

from datetime import date, datetime, time, timedelta
from itertools import count

import pytest

from src.timekeeper.timekeeper.core.enums import EntryStatus
from src.timekeeper.timekeeper.entries.memory_repository import InMemoryRecordStore
from src.timekeeper.timekeeper.entries.model import TimeEntry
from src.timekeeper.timekeeper.reminders.repository import InMemoryPreferencesStore
from src.timekeeper.timekeeper.tracking.service import TimeTrackingEngine


class ManualClock:
    """ClockSource that only moves when a test moves it."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> datetime:
        self.current = value
        return self.current


@pytest.fixture
def fixed_now() -> datetime:
    # Monday
    return datetime(2024, 3, 4, 9, 0)


@pytest.fixture
def clock(fixed_now) -> ManualClock:
    return ManualClock(fixed_now)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def preferences() -> InMemoryPreferencesStore:
    return InMemoryPreferencesStore()


@pytest.fixture
def engine(store, clock):
    ids = count(1)
    eng = TimeTrackingEngine(store, clock, id_factory=lambda: f"e{next(ids)}")
    yield eng
    eng.close()


@pytest.fixture
def closed_entry():
    """Factory for a finished day stored directly (bypassing the engine)."""

    ids = count(1)

    def _make(user_id: int, day: date, start: time = time(9, 0), end: time = time(17, 0), **kwargs) -> TimeEntry:
        clock_in = datetime.combine(day, start)
        clock_out = datetime.combine(day, end)
        return TimeEntry(
            id=f"seed{next(ids)}",
            user_id=user_id,
            work_date=day,
            status=EntryStatus.CLOCKED_OUT,
            clock_in=clock_in,
            clock_out=clock_out,
            total_hours=round((clock_out - clock_in).total_seconds() / 3600, 2),
            last_modified=clock_out,
            revision=1,
            **kwargs,
        ).validate()

    return _make
