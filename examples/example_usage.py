"""Example: drive the engine and reports directly (no Flask).

Uses the in-memory stores and a hand-set clock so it runs without MySQL.
"""

from datetime import datetime, timedelta

from src.timekeeper.timekeeper.entries.memory_repository import InMemoryRecordStore
from src.timekeeper.timekeeper.reports.export import weekly_report_csv
from src.timekeeper.timekeeper.reports.service import ReportAggregator
from src.timekeeper.timekeeper.tracking.service import TimeTrackingEngine


class StepClock:
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def main():
    clock = StepClock(datetime(2024, 3, 4, 8, 45))
    store = InMemoryRecordStore()
    engine = TimeTrackingEngine(store, clock)

    engine.clock_in(1).unwrap()
    clock.advance(hours=3, minutes=30)
    engine.start_lunch_break(1).unwrap()
    clock.advance(minutes=45)
    engine.end_lunch_break(1).unwrap()
    clock.advance(hours=2)
    engine.start_short_break(1).unwrap()
    clock.advance(minutes=10)
    print("live:", engine.snapshot(1).formatted)
    engine.end_short_break(1).unwrap()
    clock.advance(hours=2, minutes=30)
    entry = engine.clock_out(1).unwrap()
    print("clocked out:", entry.total_hours, "hours")

    # Clock-out from a closed day is rejected, not raised
    result = engine.clock_out(1)
    print("second clock-out:", result.ok, result.message)

    reports = ReportAggregator(store, clock=clock)
    print(weekly_report_csv(reports.weekly_report(1, clock.now().date())))


if __name__ == "__main__":
    main()
