from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import require_user_id
from ..container import Container
from .notifier import InboxNotifier


def register(app: Flask, container: Container) -> None:
    preferences = container.preferences
    scheduler = container.scheduler

    @app.route("/api/users/<int:user_id>/preferences", methods=["GET"], endpoint="get_preferences")
    def get_preferences(user_id: int):
        prefs = preferences.get(require_user_id(user_id))
        return jsonify({"success": True, "preferences": prefs.to_dict()})

    @app.route("/api/users/<int:user_id>/preferences", methods=["PUT"], endpoint="update_preferences")
    def update_preferences(user_id: int):
        data = request.get_json(silent=True) or {}
        prefs = preferences.get(require_user_id(user_id)).updated(data)
        preferences.save(prefs)
        return jsonify({"success": True, "preferences": prefs.to_dict()})

    @app.route("/api/users/<int:user_id>/session/start", methods=["POST"], endpoint="session_start")
    def session_start(user_id: int):
        scheduler.watch(user_id)
        return jsonify({"success": True, "watching": True})

    @app.route("/api/users/<int:user_id>/session/end", methods=["POST"], endpoint="session_end")
    def session_end(user_id: int):
        scheduler.unwatch(user_id)
        return jsonify({"success": True, "watching": False})

    @app.route("/api/users/<int:user_id>/reminders/suppress", methods=["POST"], endpoint="suppress_reminders")
    def suppress_reminders(user_id: int):
        scheduler.suppress(user_id)
        return jsonify({"success": True, "suppressed": True})

    @app.route("/api/users/<int:user_id>/reminders/resume", methods=["POST"], endpoint="resume_reminders")
    def resume_reminders(user_id: int):
        scheduler.resume(user_id)
        return jsonify({"success": True, "suppressed": False})

    @app.route("/api/users/<int:user_id>/reminders", methods=["GET"], endpoint="pending_reminders")
    def pending_reminders(user_id: int):
        notifier = container.notifier
        pending = notifier.drain(require_user_id(user_id)) if isinstance(notifier, InboxNotifier) else []
        return jsonify({"success": True, "reminders": pending})

    @app.route("/api/reminders/check", methods=["POST"], endpoint="run_reminder_checks")
    def run_reminder_checks():
        fired = scheduler.run_checks()
        return jsonify({"success": True, "fired": fired})
