from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from ..core.constants import DAYS_PER_WEEK
from ..core.enums import WeekStart
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_month(value: str) -> tuple[int, int]:
    """Parse YYYY-MM into (year, month)."""
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid month (YYYY-MM): {value!r}")
    return parsed.year, parsed.month


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def format_instant(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def end_of_day(day: date) -> datetime:
    """Last whole second of a calendar day."""
    return datetime.combine(day, time(23, 59, 59))


def week_start_for(day: date, week_starts_on: WeekStart = WeekStart.SUNDAY) -> date:
    offset = (day.weekday() - week_starts_on.weekday) % DAYS_PER_WEEK
    return day - timedelta(days=offset)


def iter_days(start: date, count: int) -> Iterator[date]:
    for i in range(count):
        yield start + timedelta(days=i)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def month_week_starts(year: int, month: int, week_starts_on: WeekStart = WeekStart.SUNDAY) -> list[date]:
    """Anchored week starts covering every day of the month."""
    first, last = month_bounds(year, month)
    starts = []
    current = week_start_for(first, week_starts_on)
    while current <= last:
        starts.append(current)
        current += timedelta(days=DAYS_PER_WEEK)
    return starts


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def format_hours(total_hours: Optional[float]) -> str:
    """7.25 -> '7h 15m'."""
    if not total_hours or total_hours <= 0:
        return "0h 0m"
    total_minutes = int(round(total_hours * 60))
    return f"{total_minutes // 60}h {total_minutes % 60}m"
