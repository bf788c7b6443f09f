from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import format_instant, parse_instant
from ..common.validators import require_int_range, require_positive, require_user_id
from ..core.constants import (
    DEFAULT_CLOCK_OUT_THRESHOLD_HOURS,
    DEFAULT_EYE_CARE_INTERVAL_MINUTES,
    MAX_EYE_CARE_INTERVAL_MINUTES,
    MIN_EYE_CARE_INTERVAL_MINUTES,
)


@dataclass(frozen=True)
class UserPreferences:
    """Per-user reminder settings plus the persisted "last fired" markers."""

    user_id: int
    eye_care_enabled: bool = True
    eye_care_interval_minutes: int = DEFAULT_EYE_CARE_INTERVAL_MINUTES
    clock_out_threshold_hours: float = DEFAULT_CLOCK_OUT_THRESHOLD_HOURS
    last_eye_care_reminder: Optional[datetime] = None
    # clock_in of the session the forgot-to-clock-out reminder already fired for
    clock_out_reminder_shown_for: Optional[datetime] = None

    def validate(self) -> "UserPreferences":
        require_user_id(self.user_id)
        require_int_range(
            self.eye_care_interval_minutes,
            "eye_care_interval_minutes",
            MIN_EYE_CARE_INTERVAL_MINUTES,
            MAX_EYE_CARE_INTERVAL_MINUTES,
        )
        require_positive(self.clock_out_threshold_hours, "clock_out_threshold_hours")
        return self

    def updated(self, changes: dict[str, Any]) -> "UserPreferences":
        """Apply user-editable settings; unknown keys are ignored."""
        kwargs: dict[str, Any] = {}
        if "eye_care_enabled" in changes:
            kwargs["eye_care_enabled"] = _as_bool(changes["eye_care_enabled"])
        if "eye_care_interval_minutes" in changes:
            kwargs["eye_care_interval_minutes"] = require_int_range(
                changes["eye_care_interval_minutes"],
                "eye_care_interval_minutes",
                MIN_EYE_CARE_INTERVAL_MINUTES,
                MAX_EYE_CARE_INTERVAL_MINUTES,
            )
        if "clock_out_threshold_hours" in changes:
            kwargs["clock_out_threshold_hours"] = require_positive(
                changes["clock_out_threshold_hours"], "clock_out_threshold_hours"
            )
        return replace(self, **kwargs).validate()

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "eye_care_enabled": self.eye_care_enabled,
            "eye_care_interval_minutes": self.eye_care_interval_minutes,
            "clock_out_threshold_hours": self.clock_out_threshold_hours,
            "last_eye_care_reminder": format_instant(self.last_eye_care_reminder),
            "clock_out_reminder_shown_for": format_instant(self.clock_out_reminder_shown_for),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserPreferences":
        return cls(
            user_id=int(data["user_id"]),
            eye_care_enabled=_as_bool(data.get("eye_care_enabled", True)),
            eye_care_interval_minutes=int(data.get("eye_care_interval_minutes", DEFAULT_EYE_CARE_INTERVAL_MINUTES)),
            clock_out_threshold_hours=float(data.get("clock_out_threshold_hours", DEFAULT_CLOCK_OUT_THRESHOLD_HOURS)),
            last_eye_care_reminder=parse_instant(data.get("last_eye_care_reminder")),
            clock_out_reminder_shown_for=parse_instant(data.get("clock_out_reminder_shown_for")),
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
