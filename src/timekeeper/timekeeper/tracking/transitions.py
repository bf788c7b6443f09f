from __future__ import annotations

from ..core.enums import Action, EntryStatus
from ..core.exceptions import AlreadyOnBreak, InvalidTransition, LunchAlreadyTaken, NoActiveSession
from ..entries.model import TimeEntry

# Legal moves for a single user's single day. Anything absent is rejected.
TRANSITIONS: dict[tuple[EntryStatus, Action], EntryStatus] = {
    (EntryStatus.NOT_STARTED, Action.CLOCK_IN): EntryStatus.CLOCKED_IN,
    (EntryStatus.CLOCKED_IN, Action.START_LUNCH): EntryStatus.ON_LUNCH,
    (EntryStatus.CLOCKED_IN, Action.START_SHORT_BREAK): EntryStatus.ON_BREAK,
    (EntryStatus.ON_LUNCH, Action.END_LUNCH): EntryStatus.CLOCKED_IN,
    (EntryStatus.ON_BREAK, Action.END_SHORT_BREAK): EntryStatus.CLOCKED_IN,
    (EntryStatus.CLOCKED_IN, Action.CLOCK_OUT): EntryStatus.CLOCKED_OUT,
}


def next_status(entry: TimeEntry, action: Action) -> EntryStatus:
    """Target status for ``action``, or the most specific InvalidTransition."""

    status = entry.status

    if action is Action.START_LUNCH and status is EntryStatus.CLOCKED_IN and entry.lunch_break is not None:
        raise LunchAlreadyTaken("Lunch break was already taken today", status=status, action=action)

    target = TRANSITIONS.get((status, action))
    if target is not None:
        return target

    raise _rejection(entry, action)


def _rejection(entry: TimeEntry, action: Action) -> InvalidTransition:
    status = entry.status
    kw = dict(status=status, action=action)

    if action is Action.CLOCK_IN:
        if status is EntryStatus.CLOCKED_OUT:
            return InvalidTransition("Already clocked out today; a new session starts tomorrow", **kw)
        return InvalidTransition("Already clocked in", **kw)

    if action is Action.CLOCK_OUT:
        if status in (EntryStatus.NOT_STARTED, EntryStatus.CLOCKED_OUT):
            return NoActiveSession("Not clocked in", **kw)
        return InvalidTransition("End the current break before clocking out", **kw)

    if action in (Action.START_LUNCH, Action.START_SHORT_BREAK):
        if status.is_on_break:
            return AlreadyOnBreak("A break is already in progress", **kw)
        return InvalidTransition("Clock in before starting a break", **kw)

    if action is Action.END_LUNCH:
        if status is EntryStatus.ON_BREAK:
            return InvalidTransition("A short break is open, not lunch", **kw)
        return NoActiveSession("No lunch break is open", **kw)

    if action is Action.END_SHORT_BREAK:
        if status is EntryStatus.ON_LUNCH:
            return InvalidTransition("Lunch is open, not a short break", **kw)
        return NoActiveSession("No short break is open", **kw)

    return InvalidTransition(f"{action.value} is not allowed while {status.value}", **kw)
