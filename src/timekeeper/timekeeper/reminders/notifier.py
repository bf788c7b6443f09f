from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from typing import Protocol

from ..core.enums import ReminderKind

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Fire-and-forget delivery of reminder events."""

    def notify(self, kind: ReminderKind, payload: dict) -> None:
        raise NotImplementedError


class InboxNotifier(Notifier):
    """Keeps the most recent reminders per user until a client drains them."""

    def __init__(self, maxlen: int = 20):
        self._inbox: dict[int, deque] = defaultdict(lambda: deque(maxlen=maxlen))
        self._lock = threading.Lock()

    def notify(self, kind: ReminderKind, payload: dict) -> None:
        logger.info("reminder %s for user %s: %s", kind.value, payload.get("user_id"), payload.get("message"))
        with self._lock:
            self._inbox[int(payload["user_id"])].append({"kind": kind.value, **payload})

    def drain(self, user_id: int) -> list[dict]:
        with self._lock:
            pending = self._inbox.pop(int(user_id), None)
        return list(pending or [])
