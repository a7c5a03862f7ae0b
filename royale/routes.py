# royale/routes.py
import logging

from flask import Blueprint, current_app, jsonify, request

from . import state

logger = logging.getLogger(__name__)

royale_bp = Blueprint("royale", __name__)


@royale_bp.route("/api/start", methods=["POST"])
def start():
    ext = current_app.extensions["royale"]
    socketio = ext["socketio"]
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    try:
        session = state.start_match(
            payload.get("obstacles"),
            service=ext["service_factory"](),
            config=ext["config"],
            launch=socketio.start_background_task,
            sleep=socketio.sleep,
        )
    except state.ControlError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:
        logger.exception("failed to start match")
        return jsonify({"error": f"Failed to start game: {exc}"}), 500
    snapshot = session.snapshot()
    return jsonify({"status": "started", "agents": snapshot["agents"]})


@royale_bp.route("/api/state")
def current_state():
    return jsonify(state.get_state())


@royale_bp.route("/api/reset", methods=["POST"])
def reset():
    state.reset()
    return jsonify({"status": "reset"})
