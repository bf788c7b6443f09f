from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Protocol, Sequence

from .model import TimeEntry

ChangeCallback = Callable[[TimeEntry], None]
Unsubscribe = Callable[[], None]


class RecordStore(Protocol):
    """Keyed persistence for one TimeEntry per (user, date).

    Implementations raise StoreUnavailable when the backing storage cannot
    be reached, and ConcurrentModification when ``expected_revision`` does
    not match the stored revision (0 meaning "must not exist yet").
    Change notifications are at-least-once; subscribers tolerate duplicates.
    """

    def get(self, user_id: int, work_date: date) -> Optional[TimeEntry]:
        raise NotImplementedError

    def upsert(self, entry: TimeEntry, *, expected_revision: Optional[int] = None) -> None:
        raise NotImplementedError

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        raise NotImplementedError

    def list_open_before(self, day: date) -> Sequence[TimeEntry]:
        """Entries dated strictly before ``day`` that are not CLOCKED_OUT/NOT_STARTED."""

        raise NotImplementedError
