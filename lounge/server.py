"""
project: Camel Lounge
module: server.py
License: MIT

Server bootstrap and admin shell utilities.

Exposes helpers to start the Socket.IO server (plus the wild spawn ticker) and
an interactive admin shell for inspecting and deleting stored player records.
"""

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from lounge import app, coordinator, db, socketio
from lounge.services.errors import PersistenceError
from lounge.services.spawn_service import start_ticker


def start_server(host="0.0.0.0", port=5000, debug: bool = False):  # pragma: no cover (integration / runtime only)
    """Start the Socket.IO server and the spawn ticker; ensure DB tables exist.

    When debug=True, Flask's debugger and reloader provide verbose tracebacks.
    Also configures application logging to a rotating file and console.
    """
    with app.app_context():
        db.create_all()
        _configure_logging()
    start_ticker(socketio, app, coordinator, app.config["SPAWN_INTERVAL_SECONDS"])
    try:
        print(f"[INFO] Starting Socket.IO server on {host}:{port} (async_mode={socketio.async_mode})")
        socketio.run(app, host=host, port=port, debug=debug, use_reloader=False, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        print("\n[INFO] Server stopped by user (Ctrl+C)")
        sys.exit(0)


def _configure_logging():
    """Configure logging to both console and a rotating file in instance/.

    The file path will be instance/app.log. Retains a few backups to avoid growth.
    """
    log_dir = app.instance_path
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        pass
    log_path = os.path.join(log_dir, "app.log")

    root = logging.getLogger()
    root.setLevel(logging.INFO)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(fmt)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(fmt)

    # Avoid duplicate handlers if reconfigured
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(file_handler)
    root.addHandler(console)


def show_player(username: str) -> int:
    """Print a stored player record as JSON. Returns a process exit code."""
    with app.app_context():
        db.create_all()
        try:
            data = coordinator.store.get(username)
        except PersistenceError as exc:
            print(f"[ERROR] {exc.message}")
            return 1
    if data is None:
        print(f"[ERROR] Player '{username}' does not exist.")
        return 1
    print(json.dumps(data, indent=2, sort_keys=True))
    return 0


def start_admin_shell():  # pragma: no cover (interactive)
    """Initialize application context and start the admin shell loop."""
    with app.app_context():
        db.create_all()
        _configure_logging()
    admin_shell()


HELP_TEXT = """
Available commands:
  help                        Show this help message
  exit                        Exit the admin shell
  list players                List stored player records
  show player <username>      Print a stored record as JSON
  delete player <username>    Delete a stored record
  status                      Show in-memory session counts
"""


def handle_admin_command(cmd: str) -> bool:
    """Run one admin shell command. Returns False when the shell should exit."""
    parts = cmd.split()
    if not parts:
        return True
    if parts[0] == "exit":
        return False
    if parts[0] == "help":
        print(HELP_TEXT)
    elif parts[:2] == ["list", "players"]:
        with app.app_context():
            names = coordinator.store.usernames()
        if not names:
            print("[INFO] No players found.")
        else:
            print("Stored players:")
            for name in names:
                print(f"  - {name}")
    elif parts[:2] == ["show", "player"] and len(parts) == 3:
        show_player(parts[2])
    elif parts[:2] == ["delete", "player"] and len(parts) == 3:
        try:
            with app.app_context():
                removed = coordinator.store.delete(parts[2])
        except PersistenceError as exc:
            print(f"[ERROR] {exc.message}")
            return True
        if removed:
            print(f"[OK] Player '{parts[2]}' deleted.")
        else:
            print(f"[ERROR] Player '{parts[2]}' does not exist.")
    elif parts[0] == "status":
        counts = coordinator.counts()
        print(" ".join(f"{k}={v}" for k, v in counts.items()))
    else:
        print("[ERROR] Unknown command. Type 'help' for commands.")
    return True


def admin_shell():  # pragma: no cover (interactive)
    print("Admin shell. Type 'help' for commands. Type 'exit' to quit.")
    while True:
        try:
            cmd = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting admin shell.")
            break
        if not handle_admin_command(cmd):
            break
