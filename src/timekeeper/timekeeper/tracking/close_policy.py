from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Optional

from ..common.datetime_utils import end_of_day
from ..core.constants import DEFAULT_STALE_CLOSE_TIME
from ..core.exceptions import ValidationError
from ..entries.model import TimeEntry


class StaleClosePolicyName(str, Enum):
    END_OF_DAY = "end_of_day"
    FIXED_TIME = "fixed_time"


class StaleClosePolicy(ABC):
    """Strategy Pattern: where a forgotten session is cut off."""

    @abstractmethod
    def close_time(self, entry: TimeEntry) -> datetime:
        raise NotImplementedError


class EndOfDayClosePolicy(StaleClosePolicy):
    """Close at the last second of the entry's calendar day."""

    def close_time(self, entry: TimeEntry) -> datetime:
        return end_of_day(entry.work_date)


@dataclass(frozen=True)
class FixedTimeClosePolicy(StaleClosePolicy):
    """Close at a fixed wall-clock time on the entry's day (e.g. 18:00)."""

    at: time = DEFAULT_STALE_CLOSE_TIME

    def close_time(self, entry: TimeEntry) -> datetime:
        return datetime.combine(entry.work_date, self.at)


@dataclass
class StaleClosePolicyFactory:
    """Factory Pattern: build the configured policy by name."""

    def for_name(self, name: str, *, close_time: Optional[time] = None) -> StaleClosePolicy:
        try:
            policy = StaleClosePolicyName(str(name).strip().lower())
        except ValueError:
            allowed = ", ".join(p.value for p in StaleClosePolicyName)
            raise ValidationError(f"STALE_CLOSE_POLICY must be one of: {allowed}")

        if policy is StaleClosePolicyName.FIXED_TIME:
            return FixedTimeClosePolicy(close_time or DEFAULT_STALE_CLOSE_TIME)
        return EndOfDayClosePolicy()
