from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import format_instant, parse_instant
from ..core.enums import EntryStatus
from ..core.exceptions import ValidationError


def _minutes(start: datetime, end: datetime) -> float:
    return round((end - start).total_seconds() / 60, 2)


@dataclass(frozen=True)
class LunchBreak:
    start: datetime
    end: Optional[datetime] = None
    duration_minutes: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def close(self, at: datetime) -> "LunchBreak":
        end = max(at, self.start)
        return replace(self, end=end, duration_minutes=_minutes(self.start, end))

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": format_instant(self.start),
            "end": format_instant(self.end),
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LunchBreak":
        return cls(
            start=parse_instant(data["start"]),
            end=parse_instant(data.get("end")),
            duration_minutes=data.get("duration_minutes"),
        )


@dataclass(frozen=True)
class ShortBreak:
    id: int
    start: datetime
    end: Optional[datetime] = None
    duration_minutes: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def close(self, at: datetime) -> "ShortBreak":
        end = max(at, self.start)
        return replace(self, end=end, duration_minutes=_minutes(self.start, end))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": format_instant(self.start),
            "end": format_instant(self.end),
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShortBreak":
        return cls(
            id=int(data["id"]),
            start=parse_instant(data["start"]),
            end=parse_instant(data.get("end")),
            duration_minutes=data.get("duration_minutes"),
        )


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: one user's attendance for one calendar day.

    Instances are immutable; every transition produces a new entry via
    dataclasses.replace so a rejected write never leaves a half-updated
    record behind. ``revision`` increases on every persisted write and is
    the base for the store's compare-and-set.
    """

    id: str
    user_id: int
    work_date: date
    status: EntryStatus = EntryStatus.NOT_STARTED
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    lunch_break: Optional[LunchBreak] = None
    short_breaks: tuple[ShortBreak, ...] = field(default_factory=tuple)
    total_hours: Optional[float] = None
    is_late: bool = False
    note: Optional[str] = None
    last_modified: Optional[datetime] = None
    revision: int = 0

    @property
    def open_short_break(self) -> Optional[ShortBreak]:
        for brk in reversed(self.short_breaks):
            if brk.is_open:
                return brk
        return None

    @property
    def lunch_open(self) -> bool:
        return self.lunch_break is not None and self.lunch_break.is_open

    @property
    def has_open_break(self) -> bool:
        return self.lunch_open or self.open_short_break is not None

    def validate(self) -> "TimeEntry":
        """Check the record-level invariants; returns self for chaining."""
        if self.clock_in and self.clock_out and self.clock_out < self.clock_in:
            raise ValidationError("clock_out is earlier than clock_in")
        if self.status is not EntryStatus.NOT_STARTED and self.clock_in is None:
            raise ValidationError(f"{self.status.value} entry has no clock_in")
        if self.status is EntryStatus.CLOCKED_OUT and self.clock_out is None:
            raise ValidationError("CLOCKED_OUT entry has no clock_out")
        if self.lunch_break and self.lunch_break.end and self.lunch_break.end < self.lunch_break.start:
            raise ValidationError("lunch break ends before it starts")
        open_breaks = 0
        for brk in self.short_breaks:
            if brk.end and brk.end < brk.start:
                raise ValidationError(f"short break {brk.id} ends before it starts")
            if brk.is_open:
                open_breaks += 1
        if self.lunch_open:
            open_breaks += 1
        if open_breaks > 1:
            raise ValidationError("more than one break is open")
        if self.status is EntryStatus.ON_LUNCH and not self.lunch_open:
            raise ValidationError("ON_LUNCH entry has no open lunch break")
        if self.status is EntryStatus.ON_BREAK and self.open_short_break is None:
            raise ValidationError("ON_BREAK entry has no open short break")
        if not self.status.is_on_break and open_breaks:
            raise ValidationError(f"{self.status.value} entry has an open break")
        if self.total_hours is not None and self.total_hours < 0:
            raise ValidationError("total_hours is negative")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.work_date.isoformat(),
            "status": self.status.value,
            "clock_in": format_instant(self.clock_in),
            "clock_out": format_instant(self.clock_out),
            "lunch_break": self.lunch_break.to_dict() if self.lunch_break else None,
            "short_breaks": [b.to_dict() for b in self.short_breaks],
            "total_hours": self.total_hours,
            "is_late": self.is_late,
            "note": self.note,
            "last_modified": format_instant(self.last_modified),
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        lunch = data.get("lunch_break")
        total = data.get("total_hours")
        return cls(
            id=str(data["id"]),
            user_id=int(data["user_id"]),
            work_date=date.fromisoformat(data["date"]),
            status=EntryStatus(data.get("status", EntryStatus.NOT_STARTED.value)),
            clock_in=parse_instant(data.get("clock_in")),
            clock_out=parse_instant(data.get("clock_out")),
            lunch_break=LunchBreak.from_dict(lunch) if lunch else None,
            short_breaks=tuple(ShortBreak.from_dict(b) for b in data.get("short_breaks") or []),
            total_hours=float(total) if total is not None else None,
            is_late=bool(data.get("is_late", False)),
            note=data.get("note"),
            last_modified=parse_instant(data.get("last_modified")),
            revision=int(data.get("revision", 0)),
        )
