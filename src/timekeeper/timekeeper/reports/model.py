from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import format_hours, format_instant
from ..core.enums import EntryStatus


@dataclass(frozen=True)
class DayRow:
    """Read-model: one calendar day of a user's report."""

    work_date: date
    status: EntryStatus
    hours: float
    break_hours: float = 0.0
    is_late: bool = False
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None

    @property
    def worked(self) -> bool:
        return self.hours > 0

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "weekday": self.work_date.strftime("%a"),
            "status": self.status.value,
            "hours": self.hours,
            "formatted": format_hours(self.hours),
            "break_hours": self.break_hours,
            "is_late": self.is_late,
            "clock_in": format_instant(self.clock_in),
            "clock_out": format_instant(self.clock_out),
        }


@dataclass(frozen=True)
class WeeklyReport:
    user_id: int
    week_start: date
    week_end: date
    days: list[DayRow]
    total_hours: float
    break_hours: float
    as_of: datetime

    @property
    def daily_hours(self) -> list[float]:
        return [d.hours for d in self.days]

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "days": [d.to_dict() for d in self.days],
            "total_hours": self.total_hours,
            "formatted": format_hours(self.total_hours),
            "break_hours": self.break_hours,
            "as_of": self.as_of.isoformat(),
        }


@dataclass(frozen=True)
class WeekSummary:
    """The part of an anchored week that falls inside a reported month."""

    week_start: date
    week_end: date
    total_hours: float
    days_worked: int

    def to_dict(self) -> dict:
        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "total_hours": self.total_hours,
            "days_worked": self.days_worked,
        }


@dataclass(frozen=True)
class MonthlyReport:
    user_id: int
    year: int
    month: int
    weeks: list[WeekSummary]
    days: list[DayRow]
    total_hours: float
    break_hours: float
    days_worked: int
    average_daily_hours: float
    as_of: datetime

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "month": f"{self.year:04d}-{self.month:02d}",
            "weeks": [w.to_dict() for w in self.weeks],
            "days": [d.to_dict() for d in self.days],
            "total_hours": self.total_hours,
            "formatted": format_hours(self.total_hours),
            "break_hours": self.break_hours,
            "days_worked": self.days_worked,
            "average_daily_hours": self.average_daily_hours,
            "as_of": self.as_of.isoformat(),
        }


@dataclass(frozen=True)
class QuickStats:
    hours_today: str
    hours_this_week: str
    status: str
    team_active: str
    team: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "hours_today": self.hours_today,
            "hours_this_week": self.hours_this_week,
            "status": self.status,
            "team_active": self.team_active,
            "team": {str(k): v for k, v in self.team.items()},
        }
