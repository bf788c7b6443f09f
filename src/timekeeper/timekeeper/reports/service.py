from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from ..common.clock import ClockSource, SystemClock
from ..common.datetime_utils import format_hours, iter_days, month_bounds, month_week_starts, parse_month, week_start_for
from ..common.validators import require_user_id
from ..core.constants import DAYS_PER_WEEK, HOURS_DECIMALS
from ..core.enums import EntryStatus, WeekStart
from ..core.exceptions import ReportUnavailable, StoreUnavailable
from ..entries.model import TimeEntry
from ..entries.repository import RecordStore
from ..hours.calculator import STATUS_LABELS, HoursCalculator, StandardHoursCalculator
from .model import DayRow, MonthlyReport, QuickStats, WeeklyReport, WeekSummary

logger = logging.getLogger(__name__)

MonthArg = Union[str, date, tuple]


def _round(value: float) -> float:
    return round(value, HOURS_DECIMALS)


class ReportAggregator:
    """Weekly/monthly summaries built from daily TimeEntry records.

    Reports are read-only snapshots as of ``clock.now()``: entries still in
    progress are measured live, and nothing is ever written back.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        calculator: Optional[HoursCalculator] = None,
        clock: Optional[ClockSource] = None,
        week_starts_on: WeekStart = WeekStart.SUNDAY,
    ):
        self._store = store
        self._calculator = calculator or StandardHoursCalculator()
        self._clock = clock or SystemClock()
        self._week_starts_on = week_starts_on

    @property
    def week_starts_on(self) -> WeekStart:
        return self._week_starts_on

    def weekly_report(self, user_id: int, week_start: date) -> WeeklyReport:
        user_id = require_user_id(user_id)
        now = self._clock.now()
        start = week_start_for(week_start, self._week_starts_on)
        days = self._day_rows(user_id, iter_days(start, DAYS_PER_WEEK), now)
        return WeeklyReport(
            user_id=user_id,
            week_start=start,
            week_end=start + timedelta(days=DAYS_PER_WEEK - 1),
            days=days,
            total_hours=_round(sum(d.hours for d in days)),
            break_hours=_round(sum(d.break_hours for d in days)),
            as_of=now,
        )

    def monthly_report(self, user_id: int, month: MonthArg) -> MonthlyReport:
        user_id = require_user_id(user_id)
        year, month_no = self._parse_month(month)
        first, last = month_bounds(year, month_no)
        now = self._clock.now()

        weeks: list[WeekSummary] = []
        days: list[DayRow] = []
        for ws in month_week_starts(year, month_no, self._week_starts_on):
            weekly = self.weekly_report(user_id, ws)
            in_month = [d for d in weekly.days if first <= d.work_date <= last]
            weeks.append(
                WeekSummary(
                    week_start=max(weekly.week_start, first),
                    week_end=min(weekly.week_end, last),
                    total_hours=_round(sum(d.hours for d in in_month)),
                    days_worked=sum(1 for d in in_month if d.worked),
                )
            )
            days.extend(in_month)

        total = _round(sum(d.hours for d in days))
        days_worked = sum(1 for d in days if d.worked)
        average = _round(total / days_worked) if days_worked else 0.0
        return MonthlyReport(
            user_id=user_id,
            year=year,
            month=month_no,
            weeks=weeks,
            days=days,
            total_hours=total,
            break_hours=_round(sum(d.break_hours for d in days)),
            days_worked=days_worked,
            average_daily_hours=average,
            as_of=now,
        )

    def quick_stats(self, user_id: int, team_user_ids: Iterable[int] = ()) -> QuickStats:
        """Dashboard summary: today's and this week's hours plus team activity."""
        user_id = require_user_id(user_id)
        now = self._clock.now()
        today = now.date()

        entry = self._load(user_id, today)
        hours_today = self._calculator.net_worked_hours(entry, now) if entry else 0.0
        weekly = self.weekly_report(user_id, today)

        team: dict[int, str] = {}
        active = 0
        members = [require_user_id(u) for u in team_user_ids]
        for member_id in members:
            member_entry = self._load(member_id, today)
            status = member_entry.status if member_entry else EntryStatus.NOT_STARTED
            team[member_id] = status.value
            if status is EntryStatus.CLOCKED_IN:
                active += 1

        return QuickStats(
            hours_today=format_hours(hours_today),
            hours_this_week=format_hours(weekly.total_hours),
            status=STATUS_LABELS[entry.status if entry else EntryStatus.NOT_STARTED],
            team_active=f"{active}/{len(members)} Active",
            team=team,
        )

    def _day_rows(self, user_id: int, days: Iterable[date], now: datetime) -> list[DayRow]:
        rows = []
        for day in days:
            entry = self._load(user_id, day)
            rows.append(self._to_row(day, entry, now))
        return rows

    def _to_row(self, day: date, entry: Optional[TimeEntry], now: datetime) -> DayRow:
        if entry is None:
            return DayRow(work_date=day, status=EntryStatus.NOT_STARTED, hours=0.0)
        b = self._calculator.breakdown(entry, now)
        return DayRow(
            work_date=day,
            status=entry.status,
            hours=_round(b.net_hours),
            break_hours=_round(b.break_hours),
            is_late=entry.is_late,
            clock_in=entry.clock_in,
            clock_out=entry.clock_out,
        )

    def _load(self, user_id: int, day: date) -> Optional[TimeEntry]:
        try:
            return self._store.get(user_id, day)
        except StoreUnavailable as e:
            logger.error("report for user %s aborted, store unavailable at %s: %s", user_id, day, e)
            raise ReportUnavailable(f"Time records are unavailable: {e}") from e

    @staticmethod
    def _parse_month(month: MonthArg) -> tuple[int, int]:
        if isinstance(month, str):
            return parse_month(month)
        if isinstance(month, date):
            return month.year, month.month
        year, month_no = month
        return int(year), int(month_no)
