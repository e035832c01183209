from datetime import datetime
from flask import Blueprint, jsonify
from sockets import presence

system_bp = Blueprint("system", __name__)


@system_bp.route("/health-check", methods=["GET"])
def health_check():
    return jsonify({"status": "ok", "timestamp": datetime.utcnow().isoformat()}), 200


@system_bp.route("/presence", methods=["GET"])
def online_users():
    users = presence.online_users()
    return jsonify({"online": users, "count": len(users)}), 200
