"""Reminder predicates.

Pure functions over (entry, preferences, now). They never read a clock,
touch a store or notify anyone; ReminderScheduler does that.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import hours_between
from ..core.enums import EntryStatus, ReminderKind
from ..entries.model import TimeEntry
from .model import UserPreferences

EYE_CARE_MESSAGE = "Time to rest your eyes! Look at something 20 feet away for 20 seconds."


def eye_care_anchor(entry: TimeEntry, prefs: UserPreferences) -> Optional[datetime]:
    """Instant the eye-care interval is measured from.

    The last reminder when there is one, otherwise the session's clock-in.
    """
    if prefs.last_eye_care_reminder is not None:
        return prefs.last_eye_care_reminder
    return entry.clock_in


def should_fire_eye_care(
    entry: Optional[TimeEntry],
    prefs: UserPreferences,
    now: datetime,
    *,
    suppressed: bool = False,
) -> bool:
    if suppressed or not prefs.eye_care_enabled:
        return False
    if entry is None or entry.status is not EntryStatus.CLOCKED_IN:
        return False
    anchor = eye_care_anchor(entry, prefs)
    if anchor is None:
        return False
    return now - anchor >= timedelta(minutes=prefs.eye_care_interval_minutes)


def should_fire_clock_out(
    entry: Optional[TimeEntry],
    prefs: UserPreferences,
    now: datetime,
    *,
    suppressed: bool = False,
) -> bool:
    if suppressed:
        return False
    if entry is None or entry.status is not EntryStatus.CLOCKED_IN or entry.clock_in is None:
        return False
    if prefs.clock_out_reminder_shown_for == entry.clock_in:
        return False
    return now - entry.clock_in >= timedelta(hours=prefs.clock_out_threshold_hours)


def due_reminders(
    entry: Optional[TimeEntry],
    prefs: UserPreferences,
    now: datetime,
    *,
    suppressed: bool = False,
) -> list[ReminderKind]:
    due = []
    if should_fire_eye_care(entry, prefs, now, suppressed=suppressed):
        due.append(ReminderKind.EYE_CARE)
    if should_fire_clock_out(entry, prefs, now, suppressed=suppressed):
        due.append(ReminderKind.CLOCK_OUT)
    return due


def clock_out_message(entry: TimeEntry, now: datetime) -> str:
    worked = int(hours_between(entry.clock_in, now))
    return f"You've been working for {worked} hour{'s' if worked != 1 else ''}. Don't forget to clock out!"
