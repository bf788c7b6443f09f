import threading
from datetime import datetime, time

import pytest

from src.timekeeper.timekeeper.core.enums import EntryStatus
from src.timekeeper.timekeeper.core.exceptions import StaleEntryCloseFailure, StoreUnavailable, ValidationError
from src.timekeeper.timekeeper.entries.memory_repository import InMemoryRecordStore
from src.timekeeper.timekeeper.tracking.close_policy import (
    EndOfDayClosePolicy,
    FixedTimeClosePolicy,
    StaleClosePolicyFactory,
)
from src.timekeeper.timekeeper.tracking.service import AUTO_CLOSE_NOTE, TimeTrackingEngine

NEXT_MORNING = datetime(2024, 3, 5, 8, 0)


def leave_open_overnight(engine, clock, user_id=1, *, lunch=False):
    engine.clock_in(user_id).unwrap()
    if lunch:
        clock.advance(hours=3)
        engine.start_lunch_break(user_id).unwrap()
    clock.set(NEXT_MORNING)


def test_forgotten_session_closes_at_end_of_day(engine, store, clock, fixed_now):
    leave_open_overnight(engine, clock)

    result = engine.auto_close_stale_entries()

    assert len(result.closed) == 1
    entry = store.get(1, fixed_now.date())
    assert entry.status is EntryStatus.CLOCKED_OUT
    assert entry.clock_out == datetime(2024, 3, 4, 23, 59, 59)
    assert entry.total_hours == 15.0
    assert entry.note == AUTO_CLOSE_NOTE


def test_open_lunch_is_closed_with_the_session(engine, store, clock, fixed_now):
    leave_open_overnight(engine, clock, lunch=True)

    engine.auto_close_stale_entries()

    entry = store.get(1, fixed_now.date())
    assert entry.lunch_break.end == entry.clock_out
    assert not entry.has_open_break
    assert entry.total_hours == 3.0


def test_sweep_is_idempotent(engine, store, clock, fixed_now):
    leave_open_overnight(engine, clock)

    first = engine.auto_close_stale_entries()
    after_first = store.get(1, fixed_now.date())
    clock.advance(hours=2)
    second = engine.auto_close_stale_entries()

    assert len(first.closed) == 1
    assert second.closed == []
    assert store.get(1, fixed_now.date()) == after_first


def test_today_is_never_swept(engine, store, clock, fixed_now):
    engine.clock_in(1).unwrap()
    clock.advance(hours=3)

    result = engine.auto_close_stale_entries()

    assert result.closed == []
    assert store.get(1, fixed_now.date()).status is EntryStatus.CLOCKED_IN


def test_fixed_time_policy_never_closes_before_clock_in(store, clock, fixed_now):
    engine = TimeTrackingEngine(store, clock, close_policy=FixedTimeClosePolicy(time(18, 0)))
    clock.set(fixed_now.replace(hour=19))
    engine.clock_in(1).unwrap()
    clock.set(NEXT_MORNING)

    engine.auto_close_stale_entries()

    entry = store.get(1, fixed_now.date())
    assert entry.clock_out == entry.clock_in
    assert entry.total_hours == 0.0


def test_fixed_time_policy_closes_at_configured_time(store, clock, fixed_now):
    engine = TimeTrackingEngine(store, clock, close_policy=FixedTimeClosePolicy(time(18, 0)))
    engine.clock_in(1).unwrap()
    clock.set(NEXT_MORNING)

    engine.auto_close_stale_entries()

    assert store.get(1, fixed_now.date()).total_hours == 9.0


def test_cancelled_sweep_stops_between_entries(engine, store, clock, fixed_now):
    engine.clock_in(1).unwrap()
    engine.clock_in(2).unwrap()
    clock.set(NEXT_MORNING)
    cancel = threading.Event()
    cancel.set()

    result = engine.auto_close_stale_entries(cancel_event=cancel)

    assert result.cancelled
    assert result.closed == []
    # resuming later finishes the job
    assert len(engine.auto_close_stale_entries().closed) == 2


class FlakyStore(InMemoryRecordStore):
    def __init__(self):
        super().__init__()
        self.fail_writes_for = set()

    def upsert(self, entry, *, expected_revision=None):
        if entry.user_id in self.fail_writes_for:
            raise StoreUnavailable("write timed out")
        super().upsert(entry, expected_revision=expected_revision)


def test_failed_close_is_reported_and_retried(clock, fixed_now):
    store = FlakyStore()
    engine = TimeTrackingEngine(store, clock)
    engine.clock_in(1).unwrap()
    engine.clock_in(2).unwrap()
    clock.set(NEXT_MORNING)
    store.fail_writes_for = {1}

    result = engine.auto_close_stale_entries()

    assert [e.user_id for e in result.closed] == [2]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert isinstance(failure, StaleEntryCloseFailure)
    assert failure.user_id == 1
    assert store.get(1, fixed_now.date()).status is EntryStatus.CLOCKED_IN

    store.fail_writes_for = set()
    retry = engine.auto_close_stale_entries()
    assert [e.user_id for e in retry.closed] == [1]


def test_policy_factory():
    factory = StaleClosePolicyFactory()

    assert isinstance(factory.for_name("end_of_day"), EndOfDayClosePolicy)
    assert factory.for_name("FIXED_TIME", close_time=time(17, 30)) == FixedTimeClosePolicy(time(17, 30))
    with pytest.raises(ValidationError):
        factory.for_name("whenever")
