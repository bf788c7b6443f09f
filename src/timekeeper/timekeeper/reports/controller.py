from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_user_id
from ..container import Container
from .export import csv_filename, monthly_report_csv, weekly_report_csv


def register(app: Flask, container: Container) -> None:
    reports = container.reports

    def _week_start_arg():
        raw = request.args.get("week_start")
        return parse_iso_date(raw) if raw else container.clock.now().date()

    def _month_arg():
        return request.args.get("month") or container.clock.now().date()

    def _csv_response(body: str, filename: str):
        return app.response_class(
            body.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/users/<int:user_id>/reports/weekly", methods=["GET"], endpoint="weekly_report")
    def weekly_report(user_id: int):
        report = reports.weekly_report(user_id, _week_start_arg())
        return jsonify({"success": True, "report": report.to_dict()})

    @app.route("/api/users/<int:user_id>/reports/weekly.csv", methods=["GET"], endpoint="weekly_report_csv")
    def weekly_report_export(user_id: int):
        report = reports.weekly_report(user_id, _week_start_arg())
        filename = csv_filename("weekly_hours", user_id, report.week_start.strftime("%Y%m%d"))
        return _csv_response(weekly_report_csv(report), filename)

    @app.route("/api/users/<int:user_id>/reports/monthly", methods=["GET"], endpoint="monthly_report")
    def monthly_report(user_id: int):
        report = reports.monthly_report(user_id, _month_arg())
        return jsonify({"success": True, "report": report.to_dict()})

    @app.route("/api/users/<int:user_id>/reports/monthly.csv", methods=["GET"], endpoint="monthly_report_csv")
    def monthly_report_export(user_id: int):
        report = reports.monthly_report(user_id, _month_arg())
        filename = csv_filename("monthly_hours", user_id, f"{report.year:04d}{report.month:02d}")
        return _csv_response(monthly_report_csv(report), filename)

    @app.route("/api/users/<int:user_id>/quick-stats", methods=["GET"], endpoint="quick_stats")
    def quick_stats(user_id: int):
        raw = request.args.get("team", "")
        team = [require_user_id(t) for t in raw.split(",") if t.strip()]
        stats = reports.quick_stats(user_id, team)
        return jsonify({"success": True, "stats": stats.to_dict()})
