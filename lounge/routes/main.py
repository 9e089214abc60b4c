"""
project: Camel Lounge
module: main.py
License: MIT

HTTP routes. The game itself speaks Socket.IO; this blueprint only exposes
liveness and a read-only view of the in-memory world for operators.
"""

from flask import Blueprint, current_app, jsonify

bp = Blueprint("main", __name__)


def _coordinator():
    return current_app.extensions["lounge_coordinator"]


@bp.route("/api/health")
def health():
    return jsonify({"status": "ok"})


@bp.route("/api/status")
def status():
    return jsonify(_coordinator().counts())


@bp.route("/api/lobbies")
def lobbies():
    return jsonify({"lobbies": _coordinator().lobby_listing()})
