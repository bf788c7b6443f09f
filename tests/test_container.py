from types import SimpleNamespace

import pytest

from src.timekeeper.timekeeper.container import build_container
from src.timekeeper.timekeeper.core.enums import WeekStart
from src.timekeeper.timekeeper.core.exceptions import ValidationError
from src.timekeeper.timekeeper.entries.memory_repository import InMemoryRecordStore
from src.timekeeper.timekeeper.tracking.close_policy import FixedTimeClosePolicy


def settings(**overrides):
    base = dict(
        STORE_BACKEND="memory",
        WEEK_STARTS_ON="sunday",
        LATE_AFTER="09:00",
        STALE_CLOSE_POLICY="end_of_day",
        STALE_CLOSE_TIME="18:00",
        POLICY_CHECK_SECONDS=60,
        STALE_SWEEP_MINUTES=60,
        SCHEDULER_ENABLED=False,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def test_memory_backend_wiring(clock):
    container = build_container(settings(WEEK_STARTS_ON="Monday"), clock=clock)

    assert isinstance(container.store, InMemoryRecordStore)
    assert container.conn is None
    assert container.reports.week_starts_on is WeekStart.MONDAY
    assert container.scheduler_enabled is False
    assert not container.scheduler.running


def test_fixed_time_policy_from_settings(clock, fixed_now):
    container = build_container(settings(STALE_CLOSE_POLICY="fixed_time", STALE_CLOSE_TIME="17:30"), clock=clock)

    assert container.engine._close_policy == FixedTimeClosePolicy(fixed_now.replace(hour=17, minute=30).time())


@pytest.mark.parametrize(
    "overrides",
    [
        {"STORE_BACKEND": "sqlite"},
        {"WEEK_STARTS_ON": "wednesday"},
        {"LATE_AFTER": "9am"},
        {"STALE_CLOSE_POLICY": "never"},
        {"POLICY_CHECK_SECONDS": 0},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        build_container(settings(**overrides))


def test_settings_module_selection(monkeypatch):
    from config import get_settings_module

    monkeypatch.setenv("APP_ENV", "prod")
    assert get_settings_module() == "config.production"
    monkeypatch.setenv("APP_ENV", "testing")
    assert get_settings_module() == "config.testing"
    monkeypatch.delenv("APP_ENV")
    assert get_settings_module() == "config.development"
