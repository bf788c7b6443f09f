from __future__ import annotations

import csv
import io
from typing import Iterable

from .model import DayRow, MonthlyReport, WeeklyReport

DAY_FIELDS = [
    "date",
    "weekday",
    "status",
    "hours",
    "formatted",
    "break_hours",
    "is_late",
    "clock_in",
    "clock_out",
]


def _write_rows(rows: Iterable[DayRow], *, total_hours: float, extra_total: dict | None = None) -> str:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=DAY_FIELDS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        d = row.to_dict()
        writer.writerow({k: "" if d[k] is None else d[k] for k in DAY_FIELDS})

    total = {"date": "TOTAL", "hours": total_hours}
    total.update(extra_total or {})
    writer.writerow(total)
    return out.getvalue()


def weekly_report_csv(report: WeeklyReport) -> str:
    return _write_rows(report.days, total_hours=report.total_hours, extra_total={"break_hours": report.break_hours})


def monthly_report_csv(report: MonthlyReport) -> str:
    """One row per day of the month plus a TOTAL row (average in ``formatted``)."""
    return _write_rows(
        report.days,
        total_hours=report.total_hours,
        extra_total={
            "break_hours": report.break_hours,
            "formatted": f"avg {report.average_daily_hours} over {report.days_worked} days",
        },
    )


def csv_filename(prefix: str, user_id: int, label: str) -> str:
    return f"{prefix}_{user_id}_{label}.csv"
