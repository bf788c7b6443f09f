from datetime import date, datetime

import mysql.connector
import pytest

from src.timekeeper.timekeeper.core.enums import EntryStatus
from src.timekeeper.timekeeper.core.exceptions import ConcurrentModification, StoreUnavailable
from src.timekeeper.timekeeper.entries.model import LunchBreak, ShortBreak, TimeEntry
from src.timekeeper.timekeeper.entries.mysql_entry_repository import MySQLRecordStore

DAY = date(2024, 3, 4)


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = 0

    def execute(self, sql, params=()):
        self._conn.executed.append((" ".join(sql.split()), params))
        if self._conn.raise_on_execute is not None:
            raise self._conn.raise_on_execute
        self.rowcount = self._conn.rowcount

    def fetchone(self):
        return self._conn.rows.pop(0) if self._conn.rows else None

    def fetchall(self):
        rows, self._conn.rows = self._conn.rows, []
        return rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *, rows=None, rowcount=1, raise_on_execute=None):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.raise_on_execute = raise_on_execute
        self.executed = []
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


def entry(**kwargs):
    base = dict(
        id="e1",
        user_id=1,
        work_date=DAY,
        status=EntryStatus.CLOCKED_IN,
        clock_in=datetime(2024, 3, 4, 9, 0),
        lunch_break=LunchBreak(start=datetime(2024, 3, 4, 12, 0), end=datetime(2024, 3, 4, 12, 30), duration_minutes=30),
        short_breaks=(ShortBreak(id=1, start=datetime(2024, 3, 4, 10, 0), end=datetime(2024, 3, 4, 10, 5), duration_minutes=5),),
        last_modified=datetime(2024, 3, 4, 12, 30),
        revision=3,
    )
    base.update(kwargs)
    return TimeEntry(**base)


def as_row(e: TimeEntry) -> dict:
    params = MySQLRecordStore._to_params(e)
    keys = [
        "entry_id", "user_id", "work_date", "status", "clock_in", "clock_out", "lunch_break",
        "short_breaks", "total_hours", "is_late", "note", "last_modified", "revision",
    ]
    return dict(zip(keys, params))


def test_row_mapping_restores_breaks():
    e = entry()

    assert MySQLRecordStore._to_entry(as_row(e)) == e


def test_get_reads_one_row():
    conn = FakeConnection(rows=[as_row(entry())])

    found = MySQLRecordStore(FakeFactory(conn)).get(1, DAY)

    assert found.status is EntryStatus.CLOCKED_IN
    assert conn.executed[0][1] == (1, DAY)


def test_lost_connection_is_store_unavailable():
    conn = FakeConnection(raise_on_execute=mysql.connector.OperationalError("server has gone away"))

    with pytest.raises(StoreUnavailable):
        MySQLRecordStore(FakeFactory(conn)).get(1, DAY)


def test_update_with_stale_revision_conflicts():
    conn = FakeConnection(rows=[{"revision": 5}], rowcount=0)
    store = MySQLRecordStore(FakeFactory(conn))

    with pytest.raises(ConcurrentModification) as exc:
        store.upsert(entry(revision=4), expected_revision=3)

    assert exc.value.actual_revision == 5
    assert "WHERE user_id=%s AND work_date=%s AND revision=%s" in conn.executed[0][0]
    assert conn.rolled_back


def test_insert_of_existing_day_conflicts():
    conn = FakeConnection(raise_on_execute=mysql.connector.IntegrityError("Duplicate entry"))
    store = MySQLRecordStore(FakeFactory(conn))

    with pytest.raises(ConcurrentModification):
        store.upsert(entry(revision=1), expected_revision=0)


def test_successful_write_notifies_subscribers():
    conn = FakeConnection()
    store = MySQLRecordStore(FakeFactory(conn))
    seen = []
    store.subscribe(seen.append)

    store.upsert(entry(revision=4), expected_revision=3)

    assert conn.committed
    assert [e.revision for e in seen] == [4]


def test_poll_changes_sets_watermark_then_reports_newer_rows():
    conn = FakeConnection(rows=[{"wm": datetime(2024, 3, 4, 12, 0)}])
    store = MySQLRecordStore(FakeFactory(conn))
    seen = []
    store.subscribe(seen.append)

    assert store.poll_changes() == 0

    conn.rows = [as_row(entry())]
    assert store.poll_changes() == 1
    assert conn.executed[-1][1] == (datetime(2024, 3, 4, 11, 59, 55),)
    assert seen[0].id == "e1"


def test_poll_changes_reports_late_stamped_rows_once():
    watermark = datetime(2024, 3, 4, 12, 0)
    conn = FakeConnection(rows=[{"wm": watermark}])
    store = MySQLRecordStore(FakeFactory(conn))
    seen = []
    store.subscribe(seen.append)
    store.poll_changes()

    same_instant = entry(user_id=2, last_modified=watermark, revision=1)
    conn.rows = [as_row(same_instant)]
    assert store.poll_changes() == 1

    # another process with a slightly slower clock, plus a repeat of the row above
    behind = entry(user_id=3, last_modified=datetime(2024, 3, 4, 11, 59, 58), revision=1)
    conn.rows = [as_row(behind), as_row(same_instant)]
    assert store.poll_changes() == 1

    assert [e.user_id for e in seen] == [2, 3]
