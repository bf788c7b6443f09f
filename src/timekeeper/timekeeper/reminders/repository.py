from __future__ import annotations

import threading
from typing import Protocol

from .model import UserPreferences


class PreferencesStore(Protocol):
    """Per-user reminder preferences. Last writer wins."""

    def get(self, user_id: int) -> UserPreferences:
        """Stored preferences, or defaults when the user has none yet."""

        raise NotImplementedError

    def save(self, prefs: UserPreferences) -> None:
        raise NotImplementedError


class InMemoryPreferencesStore(PreferencesStore):
    def __init__(self):
        self._by_user: dict[int, UserPreferences] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> UserPreferences:
        with self._lock:
            return self._by_user.get(int(user_id)) or UserPreferences(user_id=int(user_id))

    def save(self, prefs: UserPreferences) -> None:
        prefs.validate()
        with self._lock:
            self._by_user[prefs.user_id] = prefs
