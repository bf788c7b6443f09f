from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import result_response
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine

    def _respond(result, user_id: int):
        return result_response(result, snapshot=engine.snapshot(user_id).to_dict())

    @app.route("/api/users/<int:user_id>/clock-in", methods=["POST"], endpoint="clock_in")
    def clock_in(user_id: int):
        return _respond(engine.clock_in(user_id), user_id)

    @app.route("/api/users/<int:user_id>/clock-out", methods=["POST"], endpoint="clock_out")
    def clock_out(user_id: int):
        return _respond(engine.clock_out(user_id), user_id)

    @app.route("/api/users/<int:user_id>/lunch/start", methods=["POST"], endpoint="start_lunch")
    def start_lunch(user_id: int):
        return _respond(engine.start_lunch_break(user_id), user_id)

    @app.route("/api/users/<int:user_id>/lunch/end", methods=["POST"], endpoint="end_lunch")
    def end_lunch(user_id: int):
        return _respond(engine.end_lunch_break(user_id), user_id)

    @app.route("/api/users/<int:user_id>/breaks/start", methods=["POST"], endpoint="start_short_break")
    def start_short_break(user_id: int):
        return _respond(engine.start_short_break(user_id), user_id)

    @app.route("/api/users/<int:user_id>/breaks/end", methods=["POST"], endpoint="end_short_break")
    def end_short_break(user_id: int):
        return _respond(engine.end_short_break(user_id), user_id)

    @app.route("/api/users/<int:user_id>/note", methods=["PUT"], endpoint="set_note")
    def set_note(user_id: int):
        data = request.get_json(silent=True) or {}
        return _respond(engine.set_note(user_id, data.get("note")), user_id)

    @app.route("/api/users/<int:user_id>/today", methods=["GET"], endpoint="today")
    def today(user_id: int):
        entry = engine.get_today_entry(user_id)
        return jsonify(
            {
                "success": True,
                "entry": entry.to_dict() if entry else None,
                "snapshot": engine.snapshot(user_id).to_dict(),
            }
        )

    @app.route("/api/maintenance/stale-sweep", methods=["POST"], endpoint="stale_sweep")
    def stale_sweep():
        result = engine.auto_close_stale_entries()
        return jsonify({"success": not result.failures, **result.to_dict()})
