from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import ConcurrentModification
from .model import TimeEntry
from .repository import ChangeCallback, RecordStore, Unsubscribe

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Process-local store; several engines sharing one instance behave like
    independent tabs writing to the same storage."""

    def __init__(self):
        self._by_user_date: dict[tuple[int, date], TimeEntry] = {}
        self._subscribers: list[ChangeCallback] = []
        self._lock = threading.RLock()

    def get(self, user_id: int, work_date: date) -> Optional[TimeEntry]:
        with self._lock:
            return self._by_user_date.get((int(user_id), work_date))

    def upsert(self, entry: TimeEntry, *, expected_revision: Optional[int] = None) -> None:
        key = (entry.user_id, entry.work_date)
        with self._lock:
            current = self._by_user_date.get(key)
            if expected_revision is not None:
                actual = current.revision if current else 0
                if actual != expected_revision:
                    raise ConcurrentModification(
                        f"Entry for user {entry.user_id} on {entry.work_date} changed (revision {actual}, expected {expected_revision})",
                        expected_revision=expected_revision,
                        actual_revision=actual,
                    )
            self._by_user_date[key] = entry
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(entry)
            except Exception:
                logger.exception("Change subscriber failed for user %s on %s", entry.user_id, entry.work_date)

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def list_open_before(self, day: date) -> Sequence[TimeEntry]:
        with self._lock:
            items = [e for e in self._by_user_date.values() if e.work_date < day and e.status.is_open]
        items.sort(key=lambda e: (e.work_date, e.user_id))
        return items
