"""
project: Camel Lounge
module: __init__.py
License: MIT

Flask application and core extensions setup.

This module wires together the Flask app, SQLAlchemy and Flask-SocketIO, then
builds the single ``SessionCoordinator`` that owns every in-memory registry
(connections, lobbies, battles, the wild spawn pool). Configuration is sourced
from environment variables with development defaults. A local ``instance/``
directory holds the SQLite database and the rotating log file.
"""

import logging
import os
import uuid
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy

# Load .env if present so `SECRET_KEY`, `DATABASE_URL`, etc. can be supplied
# without exporting shell variables during development.
load_dotenv()

app = Flask(__name__, instance_relative_config=True)

try:
    os.makedirs(app.instance_path, exist_ok=True)
except OSError:
    # Read-only deployments fall back to whatever DATABASE_URL points at
    pass

secret_key = os.getenv("SECRET_KEY", "dev-secret-change-me")
database_url = os.getenv("DATABASE_URL")

# During pytest runs, isolate to a separate database file
if not database_url:
    is_pytest = bool(os.getenv("PYTEST_CURRENT_TEST"))
    db_filename = "lounge_test.db" if is_pytest else "lounge.db"
    db_path = Path(app.instance_path) / db_filename
    database_url = f"sqlite:///{db_path.as_posix()}"

app.config.update(
    SECRET_KEY=secret_key,
    SQLALCHEMY_DATABASE_URI=database_url,
    SQLALCHEMY_TRACK_MODIFICATIONS=False,
    # World / spawn tuning
    SPAWN_INTERVAL_SECONDS=float(os.getenv("SPAWN_INTERVAL_SECONDS", "30")),
    WORLD_SIZE=int(os.getenv("WORLD_SIZE", "1000")),
    STARTER_LEVEL=int(os.getenv("STARTER_LEVEL", "5")),
    # Lobby sizing; capacity requested by clients is clamped to the max
    LOBBY_DEFAULT_CAPACITY=int(os.getenv("LOBBY_DEFAULT_CAPACITY", "4")),
    LOBBY_MAX_CAPACITY=int(os.getenv("LOBBY_MAX_CAPACITY", "16")),
)

engine_opts = {}
if database_url.startswith("sqlite:///"):
    engine_opts["connect_args"] = {
        "timeout": 10,  # busy timeout (seconds) for sqlite
        "check_same_thread": False,  # socketio background tasks share the engine
    }
db = SQLAlchemy(app, session_options={"expire_on_commit": False}, engine_options=engine_opts)

# Let Flask-SocketIO select best async_mode based on installed deps (eventlet/gevent/threading)
socketio = SocketIO(
    app,
    async_mode=os.getenv("SOCKETIO_ASYNC_MODE") or None,
    cors_allowed_origins=os.getenv("CORS_ALLOWED_ORIGINS", "*"),
    engineio_logger=bool(os.getenv("ENGINEIO_LOGGER", "0") == "1"),
    ping_interval=20,
    ping_timeout=10,
    transports=["websocket", "polling"],
)

# Apply SQLite pragmatic tuning (WAL + busy timeout) once the engine is created.
from sqlalchemy import event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: D401
    if not database_url.startswith("sqlite"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=10000")
    cursor.close()


# Models must be imported before create_all so their tables are registered
from lounge.models import models as _models  # noqa: F401,E402
from lounge.services.coordinator import SessionCoordinator  # noqa: E402
from lounge.services.persistence import SqlPlayerStore  # noqa: E402
from lounge.services.spawn_service import SpawnManager  # noqa: E402
from lounge.transport import SocketIOTransport  # noqa: E402

coordinator = SessionCoordinator(
    transport=SocketIOTransport(socketio),
    store=SqlPlayerStore(db),
    spawner=SpawnManager(world_size=app.config["WORLD_SIZE"]),
    starter_level=app.config["STARTER_LEVEL"],
    default_capacity=app.config["LOBBY_DEFAULT_CAPACITY"],
    max_capacity=app.config["LOBBY_MAX_CAPACITY"],
)
app.extensions["lounge_coordinator"] = coordinator

# Register HTTP blueprints
from lounge.routes.main import bp as bp_main  # noqa: E402

app.register_blueprint(bp_main)

# Import websocket handlers so their event decorators register with Socket.IO (side-effect)
from lounge.websockets import game as _ws_game  # noqa: F401,E402
from lounge.websockets import lobby as _ws_lobby  # noqa: F401,E402


def create_app():
    """Return the Flask app instance, ensuring tables exist.

    Idempotent; called by the CLI, the server bootstrap and the test fixtures.
    """
    with app.app_context():
        db.create_all()
    return app


@app.errorhandler(500)
def internal_error(e):
    error_id = uuid.uuid4().hex[:8]
    logging.exception("Unhandled exception (id=%s)", error_id)
    return jsonify({"error": "internal", "error_id": error_id}), 500
