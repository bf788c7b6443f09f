from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Callable, Optional

from ..common.clock import ClockSource, SystemClock
from ..common.validators import require_user_id
from ..core.constants import DEFAULT_LATE_AFTER
from ..core.enums import Action, EntryStatus
from ..core.exceptions import (
    ConcurrentModification,
    DomainError,
    StaleEntryCloseFailure,
    StoreUnavailable,
    ValidationError,
)
from ..core.result import OperationResult
from ..entries.model import LunchBreak, ShortBreak, TimeEntry
from ..entries.repository import RecordStore
from ..hours.calculator import HoursCalculator, SessionSnapshot, StandardHoursCalculator, session_snapshot
from .close_policy import EndOfDayClosePolicy, StaleClosePolicy
from .transitions import next_status

logger = logging.getLogger(__name__)

AUTO_CLOSE_NOTE = "Automatically clocked out by maintenance sweep"


@dataclass
class SweepResult:
    closed: list[TimeEntry] = field(default_factory=list)
    failures: list[StaleEntryCloseFailure] = field(default_factory=list)
    skipped: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "closed": [e.to_dict() for e in self.closed],
            "failures": [
                {"user_id": f.user_id, "date": f.work_date.isoformat() if f.work_date else None, "message": str(f)}
                for f in self.failures
            ],
            "skipped": self.skipped,
            "cancelled": self.cancelled,
        }


class TimeTrackingEngine:
    """Owns the legal state transitions of a day's TimeEntry.

    Every operation is one read-modify-write: reload the record, check the
    transition, build the new immutable entry, then compare-and-set it
    against the revision that was just read. Domain failures come back in
    the OperationResult; StoreUnavailable propagates.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: ClockSource | None = None,
        *,
        calculator: HoursCalculator | None = None,
        close_policy: StaleClosePolicy | None = None,
        late_after: time | None = DEFAULT_LATE_AFTER,
        id_factory: Callable[[], str] | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._calculator = calculator or StandardHoursCalculator()
        self._close_policy = close_policy or EndOfDayClosePolicy()
        self._late_after = late_after
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._current: dict[int, TimeEntry] = {}
        self._lock = threading.Lock()
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def calculator(self) -> HoursCalculator:
        return self._calculator

    def close(self) -> None:
        """Stop listening to store changes (component teardown)."""
        self._unsubscribe()
        with self._lock:
            self._current.clear()

    # Queries

    def get_today_entry(self, user_id: int) -> Optional[TimeEntry]:
        user_id = require_user_id(user_id)
        today = self._clock.now().date()
        with self._lock:
            cached = self._current.get(user_id)
        if cached is not None and cached.work_date == today:
            return cached
        entry = self._store.get(user_id, today)
        if entry is not None:
            self._remember(entry)
        return entry

    def current_status(self, user_id: int) -> EntryStatus:
        entry = self.get_today_entry(user_id)
        return entry.status if entry else EntryStatus.NOT_STARTED

    def ensure_today_entry(self, user_id: int, *, now: datetime | None = None) -> TimeEntry:
        """The only place a day's record is created.

        Returns the stored entry for today, or a fresh NOT_STARTED entry
        (revision 0, not yet persisted; the first successful transition
        writes it).
        """
        user_id = require_user_id(user_id)
        now = now or self._clock.now()
        existing = self._store.get(user_id, now.date())
        if existing is not None:
            return existing
        return TimeEntry(id=self._id_factory(), user_id=user_id, work_date=now.date())

    def live_hours(self, user_id: int) -> float:
        entry = self.get_today_entry(user_id)
        if entry is None:
            return 0.0
        return self._calculator.net_worked_hours(entry, self._clock.now())

    def snapshot(self, user_id: int) -> SessionSnapshot:
        return session_snapshot(self.get_today_entry(user_id), self._clock.now(), calculator=self._calculator)

    # Transitions

    def clock_in(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            is_late = self._late_after is not None and now.time() > self._late_after
            return replace(entry, clock_in=now, clock_out=None, total_hours=None, is_late=is_late)

        return self._transition(user_id, Action.CLOCK_IN, apply, create=True)

    def clock_out(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            closed = replace(entry, clock_out=now, status=EntryStatus.CLOCKED_OUT)
            return replace(closed, total_hours=self._calculator.stamped_hours(closed, now))

        return self._transition(user_id, Action.CLOCK_OUT, apply)

    def start_lunch_break(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            return replace(entry, lunch_break=LunchBreak(start=now))

        return self._transition(user_id, Action.START_LUNCH, apply)

    def end_lunch_break(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            return replace(entry, lunch_break=entry.lunch_break.close(now))

        return self._transition(user_id, Action.END_LUNCH, apply)

    def start_short_break(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            brk = ShortBreak(id=len(entry.short_breaks) + 1, start=now)
            return replace(entry, short_breaks=entry.short_breaks + (brk,))

        return self._transition(user_id, Action.START_SHORT_BREAK, apply)

    def end_short_break(self, user_id: int) -> OperationResult:
        def apply(entry: TimeEntry, now: datetime) -> TimeEntry:
            open_break = entry.open_short_break
            breaks = tuple(b.close(now) if b is open_break else b for b in entry.short_breaks)
            return replace(entry, short_breaks=breaks)

        return self._transition(user_id, Action.END_SHORT_BREAK, apply)

    def set_note(self, user_id: int, note: Optional[str]) -> OperationResult:
        now = self._clock.now()
        try:
            user_id = require_user_id(user_id)
            base = self._store.get(user_id, now.date())
            if base is None:
                raise ValidationError("No entry for today; clock in first")
            cleaned = (note or "").strip()[:500] or None
            updated = replace(base, note=cleaned, last_modified=now, revision=base.revision + 1)
            self._store.upsert(updated, expected_revision=base.revision)
        except DomainError as e:
            self._log_rejection("set_note", user_id, e)
            return OperationResult.failure(e)
        self._remember(updated)
        return OperationResult.success(updated)

    def _transition(
        self,
        user_id: int,
        action: Action,
        apply: Callable[[TimeEntry, datetime], TimeEntry],
        *,
        create: bool = False,
    ) -> OperationResult:
        now = self._clock.now()
        base: Optional[TimeEntry] = None
        try:
            user_id = require_user_id(user_id)
            if create:
                entry = self.ensure_today_entry(user_id, now=now)
                base = entry if entry.revision > 0 else None
            else:
                base = self._store.get(user_id, now.date())
                # Without a stored entry, evaluate against a throwaway NOT_STARTED one; nothing is written.
                entry = base or TimeEntry(id="", user_id=user_id, work_date=now.date())

            target = next_status(entry, action)
            updated = replace(apply(entry, now), status=target, last_modified=now, revision=entry.revision + 1)
            updated.validate()
            self._store.upsert(updated, expected_revision=entry.revision)
        except ConcurrentModification as e:
            logger.warning("%s for user %s rejected: %s", action.value, user_id, e)
            self._forget(user_id)
            return OperationResult.failure(e, entry=base)
        except DomainError as e:
            self._log_rejection(action.value, user_id, e)
            return OperationResult.failure(e, entry=base)

        logger.info("user %s %s -> %s at %s", user_id, action.value, updated.status.value, now.isoformat())
        self._remember(updated)
        return OperationResult.success(updated)

    # Maintenance

    def auto_close_stale_entries(
        self,
        as_of: datetime | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> SweepResult:
        """Force-close every entry whose day has fully elapsed while still open.

        Safe to repeat: entries already CLOCKED_OUT are never touched again.
        Safe to cancel between entries via ``cancel_event``.
        """
        as_of = as_of or self._clock.now()
        result = SweepResult()

        for stale in self._store.list_open_before(as_of.date()):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info("stale sweep cancelled after %d closes", len(result.closed))
                break
            try:
                current = self._store.get(stale.user_id, stale.work_date)
                if current is None or not current.status.is_open or current.work_date >= as_of.date():
                    result.skipped += 1
                    continue
                closed = self._force_close(current)
                self._store.upsert(closed, expected_revision=current.revision)
            except (ConcurrentModification, StoreUnavailable) as e:
                failure = StaleEntryCloseFailure(
                    f"Could not close stale entry for user {stale.user_id} on {stale.work_date}: {e}",
                    user_id=stale.user_id,
                    work_date=stale.work_date,
                )
                logger.error("%s (will retry on next sweep)", failure)
                result.failures.append(failure)
                continue

            logger.info(
                "auto-closed stale entry user=%s date=%s clock_out=%s total_hours=%s",
                closed.user_id, closed.work_date, closed.clock_out.isoformat(), closed.total_hours,
            )
            self._forget(closed.user_id)
            result.closed.append(closed)

        return result

    def _force_close(self, entry: TimeEntry) -> TimeEntry:
        floor = entry.clock_in
        if entry.lunch_open:
            floor = max(floor, entry.lunch_break.start)
        open_break = entry.open_short_break
        if open_break is not None:
            floor = max(floor, open_break.start)
        close_at = max(self._close_policy.close_time(entry), floor)

        lunch = entry.lunch_break.close(close_at) if entry.lunch_open else entry.lunch_break
        breaks = tuple(b.close(close_at) if b.is_open else b for b in entry.short_breaks)
        closed = replace(
            entry,
            status=EntryStatus.CLOCKED_OUT,
            clock_out=close_at,
            lunch_break=lunch,
            short_breaks=breaks,
            note=entry.note or AUTO_CLOSE_NOTE,
            last_modified=self._clock.now(),
            revision=entry.revision + 1,
        )
        return replace(closed, total_hours=self._calculator.stamped_hours(closed, close_at)).validate()

    # Cross-context sync

    def _on_store_change(self, entry: TimeEntry) -> None:
        # Any change (ours, another tab's, or a duplicate delivery) invalidates
        # the cached copy; the next read reloads from the store.
        with self._lock:
            cached = self._current.get(entry.user_id)
            if cached is not None and cached.work_date == entry.work_date and cached.revision != entry.revision:
                del self._current[entry.user_id]

    def _remember(self, entry: TimeEntry) -> None:
        with self._lock:
            self._current[entry.user_id] = entry

    def _forget(self, user_id: int) -> None:
        with self._lock:
            self._current.pop(user_id, None)

    @staticmethod
    def _log_rejection(action: str, user_id, error: DomainError) -> None:
        logger.info("%s for user %s rejected (%s): %s", action, user_id, type(error).__name__, error)
