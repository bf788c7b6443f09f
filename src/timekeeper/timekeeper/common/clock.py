from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockSource(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Local wall-clock time. Inject a different ClockSource in tests."""

    def now(self) -> datetime:
        return datetime.now()
