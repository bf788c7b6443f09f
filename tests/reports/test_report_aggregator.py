from datetime import date, datetime, time, timedelta

import pytest

from src.timekeeper.timekeeper.core.enums import EntryStatus, WeekStart
from src.timekeeper.timekeeper.core.exceptions import ReportUnavailable, StoreUnavailable
from src.timekeeper.timekeeper.entries.memory_repository import InMemoryRecordStore
from src.timekeeper.timekeeper.reports.service import ReportAggregator
from src.timekeeper.timekeeper.tracking.service import TimeTrackingEngine

SUNDAY = date(2024, 3, 3)


@pytest.fixture
def reports(store, clock):
    return ReportAggregator(store, clock=clock)


def test_seven_eight_hour_days_make_56(store, reports, closed_entry):
    for i in range(7):
        store.upsert(closed_entry(1, SUNDAY + timedelta(days=i)))

    report = reports.weekly_report(1, SUNDAY)

    assert report.total_hours == 56
    assert report.daily_hours == [8.0] * 7
    assert [d.status for d in report.days] == [EntryStatus.CLOCKED_OUT] * 7


def test_week_is_normalized_to_its_anchor(store, clock, reports):
    assert reports.weekly_report(1, date(2024, 3, 6)).week_start == SUNDAY

    monday_weeks = ReportAggregator(store, clock=clock, week_starts_on=WeekStart.MONDAY)
    report = monday_weeks.weekly_report(1, date(2024, 3, 6))
    assert report.week_start == date(2024, 3, 4)
    assert report.week_end == date(2024, 3, 10)


def test_missing_days_are_not_started_with_zero_hours(store, reports, closed_entry):
    store.upsert(closed_entry(1, date(2024, 3, 5), end=time(13, 30)))

    report = reports.weekly_report(1, SUNDAY)

    assert report.daily_hours == [0, 0, 4.5, 0, 0, 0, 0]
    assert report.days[0].status is EntryStatus.NOT_STARTED
    assert report.total_hours == 4.5


def test_day_in_progress_is_measured_live(engine, clock, reports):
    engine.clock_in(1).unwrap()
    clock.advance(hours=2)
    engine.start_short_break(1).unwrap()
    clock.advance(minutes=30)

    report = reports.weekly_report(1, clock.now().date())

    monday = report.days[1]
    assert monday.status is EntryStatus.ON_BREAK
    assert monday.hours == 2.0
    assert monday.break_hours == 0.5


def test_other_users_are_not_mixed_in(store, reports, closed_entry):
    store.upsert(closed_entry(2, SUNDAY))

    assert reports.weekly_report(1, SUNDAY).total_hours == 0


def twenty_weekdays_of_march(closed_entry):
    day = date(2024, 3, 1)
    entries = []
    while len(entries) < 20:
        if day.weekday() < 5:
            entries.append(closed_entry(1, day))
        day += timedelta(days=1)
    return entries


def test_monthly_average(store, clock, reports, closed_entry):
    clock.set(datetime(2024, 4, 2, 10, 0))
    for e in twenty_weekdays_of_march(closed_entry):
        store.upsert(e)

    report = reports.monthly_report(1, "2024-03")

    assert report.total_hours == 160
    assert report.days_worked == 20
    assert report.average_daily_hours == 8
    assert len(report.days) == 31
    assert report.days[0].work_date == date(2024, 3, 1)
    assert report.days[-1].work_date == date(2024, 3, 31)
    assert sum(w.total_hours for w in report.weeks) == 160


def test_empty_month_average_is_zero(reports):
    report = reports.monthly_report(1, (2024, 2))

    assert report.total_hours == 0
    assert report.days_worked == 0
    assert report.average_daily_hours == 0
    assert len(report.days) == 29


def test_month_weeks_are_clipped_to_the_month(reports):
    report = reports.monthly_report(1, date(2024, 3, 15))

    assert report.weeks[0].week_start == date(2024, 3, 1)
    assert report.weeks[-1].week_end == date(2024, 3, 31)
    assert len(report.weeks) == 6


class CountingStore(InMemoryRecordStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def upsert(self, entry, *, expected_revision=None):
        self.writes += 1
        super().upsert(entry, expected_revision=expected_revision)


def test_reports_never_write(clock, closed_entry):
    store = CountingStore()
    store.upsert(closed_entry(1, SUNDAY))
    reports = ReportAggregator(store, clock=clock)

    reports.weekly_report(1, SUNDAY)
    reports.monthly_report(1, "2024-03")
    reports.quick_stats(1, [2, 3])

    assert store.writes == 1


class DownStore(InMemoryRecordStore):
    def get(self, user_id, work_date):
        raise StoreUnavailable("connection refused")


def test_store_failure_fails_the_whole_report(clock):
    reports = ReportAggregator(DownStore(), clock=clock)

    with pytest.raises(ReportUnavailable):
        reports.weekly_report(1, SUNDAY)
    with pytest.raises(ReportUnavailable):
        reports.monthly_report(1, "2024-03")


def test_quick_stats(store, clock, closed_entry):
    ids = iter(range(100))
    engine = TimeTrackingEngine(store, clock, id_factory=lambda: str(next(ids)))
    store.upsert(closed_entry(1, SUNDAY))
    engine.clock_in(1).unwrap()
    engine.clock_in(2).unwrap()
    engine.clock_in(3).unwrap()
    engine.start_lunch_break(3).unwrap()
    clock.advance(hours=1, minutes=15)

    stats = ReportAggregator(store, clock=clock).quick_stats(1, [2, 3, 4])

    assert stats.hours_today == "1h 15m"
    assert stats.hours_this_week == "9h 15m"
    assert stats.status == "Clocked In"
    assert stats.team_active == "1/3 Active"
    assert stats.team == {2: "CLOCKED_IN", 3: "ON_LUNCH", 4: "NOT_STARTED"}
