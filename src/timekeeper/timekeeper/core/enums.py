from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Status of one user's attendance record for one calendar day."""

    NOT_STARTED = "NOT_STARTED"
    CLOCKED_IN = "CLOCKED_IN"
    ON_LUNCH = "ON_LUNCH"
    ON_BREAK = "ON_BREAK"
    CLOCKED_OUT = "CLOCKED_OUT"

    @property
    def is_open(self) -> bool:
        return self in OPEN_STATUSES

    @property
    def is_on_break(self) -> bool:
        return self in (EntryStatus.ON_LUNCH, EntryStatus.ON_BREAK)


OPEN_STATUSES = frozenset({EntryStatus.CLOCKED_IN, EntryStatus.ON_LUNCH, EntryStatus.ON_BREAK})


class Action(str, Enum):
    """Engine operations that move an entry between statuses."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    START_LUNCH = "start_lunch"
    END_LUNCH = "end_lunch"
    START_SHORT_BREAK = "start_short_break"
    END_SHORT_BREAK = "end_short_break"


class ReminderKind(str, Enum):
    EYE_CARE = "eye_care"
    CLOCK_OUT = "clock_out"


class WeekStart(str, Enum):
    """Which weekday anchors a reporting week."""

    SUNDAY = "sunday"
    MONDAY = "monday"

    @property
    def weekday(self) -> int:
        # date.weekday(): Monday=0 ... Sunday=6
        return 6 if self is WeekStart.SUNDAY else 0
