from __future__ import annotations

from typing import Any

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_datetime
from .model import UserPreferences
from .repository import PreferencesStore


class MySQLPreferencesStore(PreferencesStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, user_id: int) -> UserPreferences:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, eye_care_enabled, eye_care_interval_minutes, clock_out_threshold_hours,
                       last_eye_care_reminder, clock_out_reminder_shown_for
                FROM user_preferences
                WHERE user_id=%s
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return self._to_prefs(r) if r else UserPreferences(user_id=int(user_id))

    def save(self, prefs: UserPreferences) -> None:
        prefs.validate()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_preferences(
                    user_id, eye_care_enabled, eye_care_interval_minutes, clock_out_threshold_hours,
                    last_eye_care_reminder, clock_out_reminder_shown_for
                )
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    eye_care_enabled=VALUES(eye_care_enabled),
                    eye_care_interval_minutes=VALUES(eye_care_interval_minutes),
                    clock_out_threshold_hours=VALUES(clock_out_threshold_hours),
                    last_eye_care_reminder=VALUES(last_eye_care_reminder),
                    clock_out_reminder_shown_for=VALUES(clock_out_reminder_shown_for)
                """,
                (
                    prefs.user_id,
                    1 if prefs.eye_care_enabled else 0,
                    int(prefs.eye_care_interval_minutes),
                    float(prefs.clock_out_threshold_hours),
                    prefs.last_eye_care_reminder,
                    prefs.clock_out_reminder_shown_for,
                ),
            )

    @staticmethod
    def _to_prefs(r: dict[str, Any]) -> UserPreferences:
        return UserPreferences(
            user_id=int(r["user_id"]),
            eye_care_enabled=bool(r.get("eye_care_enabled")),
            eye_care_interval_minutes=int(r["eye_care_interval_minutes"]),
            clock_out_threshold_hours=float(r["clock_out_threshold_hours"]),
            last_eye_care_reminder=normalize_mysql_datetime(r.get("last_eye_care_reminder")),
            clock_out_reminder_shown_for=normalize_mysql_datetime(r.get("clock_out_reminder_shown_for")),
        )
