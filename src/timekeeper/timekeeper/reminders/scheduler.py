"""Background timers for reminders, live display and the stale-entry sweep.

Every check recomputes from wall-clock deltas against persisted instants, so
a tick that runs late (suspended process, coalesced job) simply catches up.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..common.clock import ClockSource, SystemClock
from ..common.validators import require_user_id
from ..core.constants import DEFAULT_DISPLAY_TICK_SECONDS, DEFAULT_POLICY_CHECK_SECONDS, DEFAULT_STALE_SWEEP_MINUTES
from ..core.enums import EntryStatus, ReminderKind
from ..core.exceptions import StoreUnavailable
from ..entries.repository import RecordStore
from ..hours.calculator import SessionSnapshot
from ..tracking.service import SweepResult, TimeTrackingEngine
from .model import UserPreferences
from .notifier import Notifier
from .policy import EYE_CARE_MESSAGE, clock_out_message, should_fire_clock_out, should_fire_eye_care
from .repository import PreferencesStore

logger = logging.getLogger(__name__)

DisplayCallback = Callable[[int, SessionSnapshot], None]

POLICY_JOB_ID = "timekeeper_policy_check"
SWEEP_JOB_ID = "timekeeper_stale_sweep"
DISPLAY_JOB_ID = "timekeeper_display_tick"


class ReminderScheduler:
    """Watches signed-in users and fires eye-care / forgot-to-clock-out reminders.

    Suppression is explicit: while a user is suppressed nothing fires and no
    marker is written, so a due reminder fires on the first check after
    ``resume``.
    """

    def __init__(
        self,
        engine: TimeTrackingEngine,
        preferences: PreferencesStore,
        notifier: Notifier,
        clock: Optional[ClockSource] = None,
        *,
        store: Optional[RecordStore] = None,
        policy_check_seconds: int = DEFAULT_POLICY_CHECK_SECONDS,
        stale_sweep_minutes: int = DEFAULT_STALE_SWEEP_MINUTES,
        display_callback: Optional[DisplayCallback] = None,
        display_tick_seconds: int = DEFAULT_DISPLAY_TICK_SECONDS,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self._engine = engine
        self._preferences = preferences
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._store = store
        self._policy_check_seconds = int(policy_check_seconds)
        self._stale_sweep_minutes = int(stale_sweep_minutes)
        self._display_callback = display_callback
        self._display_tick_seconds = int(display_tick_seconds)
        self._scheduler = scheduler or BackgroundScheduler()

        self._watched: set[int] = set()
        self._suppressed: set[int] = set()
        self._lock = threading.Lock()
        self._sweep_cancel = threading.Event()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def watched(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._watched)

    def start(self) -> None:
        if self.running:
            return
        self._sweep_cancel.clear()
        self._scheduler.add_job(
            self.run_checks,
            "interval",
            seconds=self._policy_check_seconds,
            id=POLICY_JOB_ID,
            name="Reminder policy check",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.run_stale_sweep,
            "interval",
            minutes=self._stale_sweep_minutes,
            id=SWEEP_JOB_ID,
            name="Stale entry sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if self._display_callback is not None:
            self._scheduler.add_job(
                self.run_display_tick,
                "interval",
                seconds=self._display_tick_seconds,
                id=DISPLAY_JOB_ID,
                name="Live hours display",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self._scheduler.start()
        logger.info(
            "reminder scheduler started (policy every %ss, stale sweep every %sm)",
            self._policy_check_seconds, self._stale_sweep_minutes,
        )

    def stop(self) -> None:
        """Cancel every timer and forget all watched users."""
        self._sweep_cancel.set()
        if self.running:
            self._scheduler.shutdown(wait=False)
        with self._lock:
            self._watched.clear()
            self._suppressed.clear()
        logger.info("reminder scheduler stopped")

    # Session lifecycle

    def watch(self, user_id: int) -> None:
        user_id = require_user_id(user_id)
        with self._lock:
            self._watched.add(user_id)

    def unwatch(self, user_id: int) -> None:
        """Logout path: nothing fires for this user afterwards."""
        user_id = require_user_id(user_id)
        with self._lock:
            self._watched.discard(user_id)
            self._suppressed.discard(user_id)

    def suppress(self, user_id: int) -> None:
        user_id = require_user_id(user_id)
        with self._lock:
            self._suppressed.add(user_id)

    def resume(self, user_id: int) -> None:
        user_id = require_user_id(user_id)
        with self._lock:
            self._suppressed.discard(user_id)

    def is_suppressed(self, user_id: int) -> bool:
        with self._lock:
            return int(user_id) in self._suppressed

    # Jobs

    def run_checks(self, now: Optional[datetime] = None) -> list[dict]:
        """One policy tick over every watched user. Returns the fired events."""
        now = now or self._clock.now()
        fired: list[dict] = []
        try:
            self._poll_store()
            for user_id in sorted(self.watched):
                try:
                    fired.extend(self.check_user(user_id, now))
                except StoreUnavailable:
                    raise
                except Exception:
                    logger.exception("reminder check failed for user %s", user_id)
        except StoreUnavailable as e:
            logger.error("reminder check skipped, store unavailable: %s", e)
        return fired

    def check_user(self, user_id: int, now: Optional[datetime] = None) -> list[dict]:
        now = now or self._clock.now()
        entry = self._engine.get_today_entry(user_id)
        prefs = self._preferences.get(user_id)
        updated = prefs

        if updated.clock_out_reminder_shown_for is not None and (
            entry is None or entry.status is EntryStatus.CLOCKED_OUT
        ):
            updated = replace(updated, clock_out_reminder_shown_for=None)

        suppressed = self.is_suppressed(user_id)
        fired: list[dict] = []

        if should_fire_eye_care(entry, updated, now, suppressed=suppressed):
            fired.append(self._fire(ReminderKind.EYE_CARE, user_id, now, EYE_CARE_MESSAGE))
            updated = replace(updated, last_eye_care_reminder=now)

        if should_fire_clock_out(entry, updated, now, suppressed=suppressed):
            fired.append(self._fire(ReminderKind.CLOCK_OUT, user_id, now, clock_out_message(entry, now)))
            updated = replace(updated, clock_out_reminder_shown_for=entry.clock_in)

        if updated != prefs:
            self._save_markers(updated)
        return fired

    def run_stale_sweep(self) -> SweepResult:
        result = self._engine.auto_close_stale_entries(cancel_event=self._sweep_cancel)
        if result.closed or result.failures:
            logger.info(
                "stale sweep: closed=%d failures=%d skipped=%d",
                len(result.closed), len(result.failures), result.skipped,
            )
        return result

    def run_display_tick(self) -> None:
        if self._display_callback is None:
            return
        for user_id in sorted(self.watched):
            self._display_callback(user_id, self._engine.snapshot(user_id))

    def _poll_store(self) -> None:
        poll = getattr(self._store, "poll_changes", None)
        if callable(poll):
            poll()

    def _fire(self, kind: ReminderKind, user_id: int, now: datetime, message: str) -> dict:
        payload = {"user_id": user_id, "message": message, "at": now.isoformat()}
        self._notifier.notify(kind, payload)
        return {"kind": kind.value, **payload}

    def _save_markers(self, after: UserPreferences) -> None:
        # Only the markers come from ``after``; settings are re-read.
        latest = self._preferences.get(after.user_id)
        merged = replace(
            latest,
            last_eye_care_reminder=after.last_eye_care_reminder,
            clock_out_reminder_shown_for=after.clock_out_reminder_shown_for,
        )
        if merged != latest:
            self._preferences.save(merged)
