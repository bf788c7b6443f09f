from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .common.clock import ClockSource, SystemClock
from .common.datetime_utils import parse_hhmm
from .common.validators import require_choice, require_positive
from .core.constants import DEFAULT_POLICY_CHECK_SECONDS, DEFAULT_STALE_SWEEP_MINUTES
from .core.enums import WeekStart
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .entries.memory_repository import InMemoryRecordStore
from .entries.mysql_entry_repository import MySQLRecordStore
from .entries.repository import RecordStore
from .hours.calculator import StandardHoursCalculator
from .reminders.mysql_preferences_repository import MySQLPreferencesStore
from .reminders.notifier import InboxNotifier, Notifier
from .reminders.repository import InMemoryPreferencesStore, PreferencesStore
from .reminders.scheduler import ReminderScheduler
from .reports.service import ReportAggregator
from .tracking.close_policy import StaleClosePolicyFactory
from .tracking.service import TimeTrackingEngine

STORE_BACKENDS = {"mysql", "memory"}


@dataclass(frozen=True)
class Container:
    clock: ClockSource
    conn: Optional[DatabaseConnection]

    store: RecordStore
    preferences: PreferencesStore
    notifier: Notifier

    engine: TimeTrackingEngine
    reports: ReportAggregator
    scheduler: ReminderScheduler

    scheduler_enabled: bool


def build_container(settings: Any, *, clock: Optional[ClockSource] = None) -> Container:
    """Wire stores, services and timers from a settings module.

    Raises ValidationError for any invalid setting.
    """
    clock = clock or SystemClock()

    backend = str(getattr(settings, "STORE_BACKEND", "mysql")).strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValidationError(f"STORE_BACKEND must be one of: {', '.join(sorted(STORE_BACKENDS))}")

    week_starts_on = require_choice(getattr(settings, "WEEK_STARTS_ON", "sunday"), "WEEK_STARTS_ON", WeekStart)
    late_after = parse_hhmm(getattr(settings, "LATE_AFTER", "09:00"))
    close_policy = StaleClosePolicyFactory().for_name(
        getattr(settings, "STALE_CLOSE_POLICY", "end_of_day"),
        close_time=parse_hhmm(getattr(settings, "STALE_CLOSE_TIME", "18:00")),
    )
    policy_check_seconds = int(
        require_positive(getattr(settings, "POLICY_CHECK_SECONDS", DEFAULT_POLICY_CHECK_SECONDS), "POLICY_CHECK_SECONDS")
    )
    stale_sweep_minutes = int(
        require_positive(getattr(settings, "STALE_SWEEP_MINUTES", DEFAULT_STALE_SWEEP_MINUTES), "STALE_SWEEP_MINUTES")
    )

    conn: Optional[DatabaseConnection] = None
    if backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
        store: RecordStore = MySQLRecordStore(conn)
        preferences: PreferencesStore = MySQLPreferencesStore(conn)
    else:
        store = InMemoryRecordStore()
        preferences = InMemoryPreferencesStore()

    calculator = StandardHoursCalculator()
    notifier = InboxNotifier()

    engine = TimeTrackingEngine(
        store,
        clock,
        calculator=calculator,
        close_policy=close_policy,
        late_after=late_after,
    )
    reports = ReportAggregator(store, calculator=calculator, clock=clock, week_starts_on=week_starts_on)
    scheduler = ReminderScheduler(
        engine,
        preferences,
        notifier,
        clock,
        store=store,
        policy_check_seconds=policy_check_seconds,
        stale_sweep_minutes=stale_sweep_minutes,
    )

    return Container(
        clock=clock,
        conn=conn,
        store=store,
        preferences=preferences,
        notifier=notifier,
        engine=engine,
        reports=reports,
        scheduler=scheduler,
        scheduler_enabled=bool(getattr(settings, "SCHEDULER_ENABLED", True)),
    )
