from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.timekeeper.timekeeper.core.enums import EntryStatus, ReminderKind
from src.timekeeper.timekeeper.core.exceptions import ValidationError
from src.timekeeper.timekeeper.entries.model import LunchBreak, ShortBreak, TimeEntry
from src.timekeeper.timekeeper.reminders.model import UserPreferences
from src.timekeeper.timekeeper.reminders.policy import (
    due_reminders,
    eye_care_anchor,
    should_fire_clock_out,
    should_fire_eye_care,
)

NOW = datetime(2024, 3, 4, 14, 0)
CLOCK_IN = datetime(2024, 3, 4, 8, 0)


def working(**kwargs) -> TimeEntry:
    return TimeEntry(
        id="t", user_id=1, work_date=date(2024, 3, 4), status=EntryStatus.CLOCKED_IN, clock_in=CLOCK_IN, **kwargs
    )


def prefs(**kwargs) -> UserPreferences:
    return UserPreferences(user_id=1, **kwargs)


def test_eye_care_waits_for_the_full_interval():
    entry = working()

    assert not should_fire_eye_care(entry, prefs(last_eye_care_reminder=NOW - timedelta(minutes=19)), NOW)
    assert should_fire_eye_care(entry, prefs(last_eye_care_reminder=NOW - timedelta(minutes=20)), NOW)
    assert should_fire_eye_care(entry, prefs(last_eye_care_reminder=NOW - timedelta(minutes=95)), NOW)


def test_eye_care_respects_custom_interval():
    p = prefs(eye_care_interval_minutes=45, last_eye_care_reminder=NOW - timedelta(minutes=30))

    assert not should_fire_eye_care(working(), p, NOW)


def test_eye_care_only_while_clocked_in():
    p = prefs(last_eye_care_reminder=NOW - timedelta(hours=1))
    on_lunch = working(lunch_break=LunchBreak(start=NOW - timedelta(minutes=5)))
    on_break = working(short_breaks=(ShortBreak(id=1, start=NOW - timedelta(minutes=5)),))

    assert not should_fire_eye_care(replace(on_lunch, status=EntryStatus.ON_LUNCH), p, NOW)
    assert not should_fire_eye_care(replace(on_break, status=EntryStatus.ON_BREAK), p, NOW)
    assert not should_fire_eye_care(
        replace(working(), status=EntryStatus.CLOCKED_OUT, clock_out=NOW - timedelta(minutes=1)), p, NOW
    )
    assert not should_fire_eye_care(None, p, NOW)


def test_eye_care_disabled_or_suppressed():
    p = prefs(last_eye_care_reminder=NOW - timedelta(hours=1))

    assert not should_fire_eye_care(working(), prefs(eye_care_enabled=False), NOW)
    assert not should_fire_eye_care(working(), p, NOW, suppressed=True)


def test_eye_care_measures_from_last_reminder_even_before_clock_in():
    p = prefs(last_eye_care_reminder=NOW - timedelta(minutes=20))
    recent = TimeEntry(
        id="t", user_id=1, work_date=NOW.date(), status=EntryStatus.CLOCKED_IN,
        clock_in=NOW - timedelta(minutes=10),
    )

    assert eye_care_anchor(recent, p) == NOW - timedelta(minutes=20)
    assert should_fire_eye_care(recent, p, NOW)


def test_eye_care_without_marker_counts_from_clock_in():
    p = prefs()

    assert eye_care_anchor(working(), p) == CLOCK_IN
    assert not should_fire_eye_care(working(), p, CLOCK_IN + timedelta(minutes=19))
    assert should_fire_eye_care(working(), p, CLOCK_IN + timedelta(minutes=20))


def test_clock_out_reminder_threshold():
    p = prefs()

    assert not should_fire_clock_out(working(), p, CLOCK_IN + timedelta(hours=9, minutes=59))
    assert should_fire_clock_out(working(), p, CLOCK_IN + timedelta(hours=10))
    assert should_fire_clock_out(working(), prefs(clock_out_threshold_hours=6), NOW)


def test_clock_out_reminder_once_per_session():
    p = prefs(clock_out_reminder_shown_for=CLOCK_IN)
    late = CLOCK_IN + timedelta(hours=12)

    assert not should_fire_clock_out(working(), p, late)
    # a different session is not covered by the flag
    other = TimeEntry(
        id="u", user_id=1, work_date=date(2024, 3, 5), status=EntryStatus.CLOCKED_IN,
        clock_in=CLOCK_IN + timedelta(days=1),
    )
    assert should_fire_clock_out(other, p, other.clock_in + timedelta(hours=10))


def test_clock_out_reminder_suppressed():
    assert not should_fire_clock_out(working(), prefs(), CLOCK_IN + timedelta(hours=11), suppressed=True)


def test_due_reminders_lists_both():
    due = due_reminders(working(), prefs(), CLOCK_IN + timedelta(hours=10))

    assert due == [ReminderKind.EYE_CARE, ReminderKind.CLOCK_OUT]


@pytest.mark.parametrize("interval", [14, 61, "often"])
def test_interval_must_be_within_bounds(interval):
    with pytest.raises(ValidationError):
        prefs().updated({"eye_care_interval_minutes": interval})


def test_threshold_must_be_positive():
    with pytest.raises(ValidationError):
        prefs().updated({"clock_out_threshold_hours": 0})


def test_updated_keeps_markers_and_ignores_unknown_keys():
    p = prefs(last_eye_care_reminder=NOW).updated(
        {"eye_care_enabled": "false", "eye_care_interval_minutes": "30", "bogus": 1}
    )

    assert p.eye_care_enabled is False
    assert p.eye_care_interval_minutes == 30
    assert p.last_eye_care_reminder == NOW
    assert UserPreferences.from_dict(p.to_dict()) == p
