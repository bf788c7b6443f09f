from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_user_id(value: Any) -> int:
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid user id: {value!r}")
    if user_id <= 0:
        raise ValidationError(f"Invalid user id: {value!r}")
    return user_id


def require_int_range(value: Any, field_name: str, min_value: int, max_value: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if not min_value <= number <= max_value:
        raise ValidationError(f"{field_name} must be between {min_value} and {max_value}")
    return number


def require_positive(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def require_choice(value: Any, field_name: str, enum_cls):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")
