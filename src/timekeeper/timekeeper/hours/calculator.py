from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_hours
from ..core.constants import HOURS_DECIMALS
from ..core.enums import EntryStatus
from ..entries.model import TimeEntry

_SECONDS_PER_HOUR = 3600.0

STATUS_LABELS = {
    EntryStatus.NOT_STARTED: "Not Started",
    EntryStatus.CLOCKED_IN: "Clocked In",
    EntryStatus.ON_LUNCH: "On Break",
    EntryStatus.ON_BREAK: "On Break",
    EntryStatus.CLOCKED_OUT: "Clocked Out",
}


@dataclass(frozen=True)
class HoursBreakdown:
    """Seconds that make up one entry's worked time, as of some instant."""

    gross_seconds: float = 0.0
    lunch_seconds: float = 0.0
    short_break_seconds: float = 0.0
    ongoing_break_seconds: float = 0.0

    @property
    def break_seconds(self) -> float:
        return self.lunch_seconds + self.short_break_seconds + self.ongoing_break_seconds

    @property
    def net_seconds(self) -> float:
        return max(0.0, self.gross_seconds - self.break_seconds)

    @property
    def net_hours(self) -> float:
        return self.net_seconds / _SECONDS_PER_HOUR

    @property
    def break_hours(self) -> float:
        return self.break_seconds / _SECONDS_PER_HOUR


@dataclass(frozen=True)
class SessionSnapshot:
    """What the display timer shows; derived from wall-clock, never stored."""

    status: EntryStatus
    label: str
    net_hours: float
    break_hours: float
    open_break_minutes: float
    formatted: str
    as_of: datetime

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "label": self.label,
            "net_hours": round(self.net_hours, HOURS_DECIMALS),
            "break_hours": round(self.break_hours, HOURS_DECIMALS),
            "open_break_minutes": round(self.open_break_minutes, 1),
            "formatted": self.formatted,
            "as_of": self.as_of.isoformat(),
        }


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def breakdown(self, entry: TimeEntry, now: datetime) -> HoursBreakdown:
        raise NotImplementedError

    def net_worked_hours(self, entry: TimeEntry, now: datetime) -> float:
        return self.breakdown(entry, now).net_hours

    def stamped_hours(self, entry: TimeEntry, now: datetime) -> float:
        """Net hours rounded for storage in ``total_hours``."""
        return round(self.net_worked_hours(entry, now), HOURS_DECIMALS)


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: (end - clock_in) - closed breaks - the open break so far, not below 0.

    Every break is clipped to the [clock_in, end] window, so breaks recorded
    out of order or outside the session can never push the result negative
    or deduct time that was never clocked.
    """

    def breakdown(self, entry: TimeEntry, now: datetime) -> HoursBreakdown:
        if entry.clock_in is None:
            return HoursBreakdown()

        start = entry.clock_in
        end = entry.clock_out or now
        if end <= start:
            return HoursBreakdown()

        def clipped(s: datetime, e: datetime) -> float:
            return max(0.0, (min(e, end) - max(s, start)).total_seconds())

        lunch = 0.0
        if entry.lunch_break and entry.lunch_break.end:
            lunch = clipped(entry.lunch_break.start, entry.lunch_break.end)

        short = sum(clipped(b.start, b.end) for b in entry.short_breaks if b.end)

        ongoing = 0.0
        if entry.status is EntryStatus.ON_LUNCH and entry.lunch_open:
            ongoing = clipped(entry.lunch_break.start, now)
        elif entry.status is EntryStatus.ON_BREAK:
            open_break = entry.open_short_break
            if open_break:
                ongoing = clipped(open_break.start, now)

        return HoursBreakdown(
            gross_seconds=(end - start).total_seconds(),
            lunch_seconds=lunch,
            short_break_seconds=short,
            ongoing_break_seconds=ongoing,
        )


_default_calculator = StandardHoursCalculator()


def hours_breakdown(entry: TimeEntry, now: datetime) -> HoursBreakdown:
    return _default_calculator.breakdown(entry, now)


def net_worked_hours(entry: TimeEntry, now: datetime) -> float:
    return _default_calculator.net_worked_hours(entry, now)


def session_snapshot(
    entry: Optional[TimeEntry],
    now: datetime,
    *,
    calculator: Optional[HoursCalculator] = None,
) -> SessionSnapshot:
    if entry is None:
        return SessionSnapshot(
            status=EntryStatus.NOT_STARTED,
            label=STATUS_LABELS[EntryStatus.NOT_STARTED],
            net_hours=0.0,
            break_hours=0.0,
            open_break_minutes=0.0,
            formatted=format_hours(0),
            as_of=now,
        )

    b = (calculator or _default_calculator).breakdown(entry, now)
    return SessionSnapshot(
        status=entry.status,
        label=STATUS_LABELS[entry.status],
        net_hours=b.net_hours,
        break_hours=b.break_hours,
        open_break_minutes=b.ongoing_break_seconds / 60,
        formatted=format_hours(b.net_hours),
        as_of=now,
    )
