from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

import mysql.connector

from ..core.enums import EntryStatus, OPEN_STATUSES
from ..core.exceptions import ConcurrentModification
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json_column, normalize_mysql_datetime, to_json_column
from .model import LunchBreak, ShortBreak, TimeEntry
from .repository import ChangeCallback, RecordStore, Unsubscribe

logger = logging.getLogger(__name__)

# Re-read window behind the watermark for rows stamped by a slower clock.
POLL_OVERLAP = timedelta(seconds=5)

_COLUMNS = (
    "entry_id, user_id, work_date, status, clock_in, clock_out, lunch_break, short_breaks, "
    "total_hours, is_late, note, last_modified, revision"
)


class MySQLRecordStore(RecordStore):
    """TimeEntry persistence in the ``time_entries`` table.

    Writes by this process notify local subscribers immediately; writes by
    other processes are picked up by ``poll_changes()``, which the policy
    timer calls on every tick.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._subscribers: list[ChangeCallback] = []
        self._lock = threading.Lock()
        self._watermark: Optional[datetime] = None
        self._reported: dict[tuple, datetime] = {}

    def get(self, user_id: int, work_date: date) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_entries WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return self._to_entry(r) if r else None

    def upsert(self, entry: TimeEntry, *, expected_revision: Optional[int] = None) -> None:
        params = self._to_params(entry)
        with db_cursor(self._conn_factory) as (_, cur):
            if expected_revision is None:
                cur.execute(
                    f"""
                    INSERT INTO time_entries({_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        status=VALUES(status), clock_in=VALUES(clock_in), clock_out=VALUES(clock_out),
                        lunch_break=VALUES(lunch_break), short_breaks=VALUES(short_breaks),
                        total_hours=VALUES(total_hours), is_late=VALUES(is_late), note=VALUES(note),
                        last_modified=VALUES(last_modified), revision=VALUES(revision)
                    """,
                    params,
                )
            elif expected_revision == 0:
                try:
                    cur.execute(
                        f"INSERT INTO time_entries({_COLUMNS}) VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)",
                        params,
                    )
                except mysql.connector.IntegrityError as e:
                    raise ConcurrentModification(
                        f"Entry for user {entry.user_id} on {entry.work_date} was created concurrently",
                        expected_revision=0,
                    ) from e
            else:
                cur.execute(
                    """
                    UPDATE time_entries
                    SET status=%s, clock_in=%s, clock_out=%s, lunch_break=%s, short_breaks=%s,
                        total_hours=%s, is_late=%s, note=%s, last_modified=%s, revision=%s
                    WHERE user_id=%s AND work_date=%s AND revision=%s
                    """,
                    params[3:] + (entry.user_id, entry.work_date, int(expected_revision)),
                )
                if cur.rowcount == 0:
                    cur.execute(
                        "SELECT revision FROM time_entries WHERE user_id=%s AND work_date=%s",
                        (entry.user_id, entry.work_date),
                    )
                    r = fetchone(cur)
                    raise ConcurrentModification(
                        f"Entry for user {entry.user_id} on {entry.work_date} changed since it was read",
                        expected_revision=expected_revision,
                        actual_revision=int(r["revision"]) if r else 0,
                    )
        self._notify([entry])

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def list_open_before(self, day: date) -> Sequence[TimeEntry]:
        placeholders = ",".join(["%s"] * len(OPEN_STATUSES))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM time_entries
                WHERE work_date < %s AND status IN ({placeholders})
                ORDER BY work_date ASC, user_id ASC
                """,
                (day, *sorted(s.value for s in OPEN_STATUSES)),
            )
            return [self._to_entry(r) for r in fetchall(cur)]

    def poll_changes(self) -> int:
        """Notify subscribers about rows written since the last poll (by any process)."""

        with db_cursor(self._conn_factory) as (_, cur):
            if self._watermark is None:
                cur.execute("SELECT MAX(last_modified) AS wm FROM time_entries")
                r = fetchone(cur)
                self._watermark = normalize_mysql_datetime(r["wm"]) if r and r.get("wm") else datetime.min
                return 0
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_entries WHERE last_modified >= %s ORDER BY last_modified ASC",
                (self._poll_since(),),
            )
            rows = [self._to_entry(r) for r in fetchall(cur)]

        changed = [e for e in rows if self._change_key(e) not in self._reported]
        stamps = [e.last_modified for e in rows if e.last_modified]
        if stamps:
            self._watermark = max(self._watermark, *stamps)
        floor = self._poll_since()
        self._reported = {
            key: at for key, at in self._reported.items() if at >= floor
        }
        for e in rows:
            if e.last_modified and e.last_modified >= floor:
                self._reported[self._change_key(e)] = e.last_modified

        if changed:
            self._notify(changed)
        return len(changed)

    def _poll_since(self) -> datetime:
        if self._watermark - datetime.min < POLL_OVERLAP:
            return datetime.min
        return self._watermark - POLL_OVERLAP

    @staticmethod
    def _change_key(entry: TimeEntry) -> tuple:
        return entry.user_id, entry.work_date, entry.revision

    def _notify(self, entries: Sequence[TimeEntry]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for entry in entries:
            for callback in subscribers:
                try:
                    callback(entry)
                except Exception:
                    logger.exception("Change subscriber failed for user %s on %s", entry.user_id, entry.work_date)

    @staticmethod
    def _to_params(entry: TimeEntry) -> tuple:
        return (
            entry.id,
            entry.user_id,
            entry.work_date,
            entry.status.value,
            entry.clock_in,
            entry.clock_out,
            to_json_column(entry.lunch_break.to_dict() if entry.lunch_break else None),
            to_json_column([b.to_dict() for b in entry.short_breaks]),
            entry.total_hours,
            1 if entry.is_late else 0,
            entry.note,
            entry.last_modified,
            entry.revision,
        )

    @staticmethod
    def _to_entry(r: dict[str, Any]) -> TimeEntry:
        lunch = from_json_column(r.get("lunch_break"))
        breaks = from_json_column(r.get("short_breaks")) or []
        total = r.get("total_hours")
        return TimeEntry(
            id=str(r["entry_id"]),
            user_id=int(r["user_id"]),
            work_date=r["work_date"],
            status=EntryStatus(r["status"]),
            clock_in=normalize_mysql_datetime(r.get("clock_in")),
            clock_out=normalize_mysql_datetime(r.get("clock_out")),
            lunch_break=LunchBreak.from_dict(lunch) if lunch else None,
            short_breaks=tuple(ShortBreak.from_dict(b) for b in breaks),
            total_hours=float(total) if total is not None else None,
            is_late=bool(r.get("is_late")),
            note=r.get("note"),
            last_modified=normalize_mysql_datetime(r.get("last_modified")),
            revision=int(r.get("revision") or 0),
        )
