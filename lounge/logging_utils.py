"""Minimal structured logging helper.

Emits key=value pairs (or one JSON object per line) with a timestamp, level
and logger name. Game services log through this instead of the stdlib
``logging`` module so lines stay greppable by ``event=``.

Usage:
    from lounge.logging_utils import get_logger
    log = get_logger("lobby")
    log.info(event="lobby_created", lobby="K3F9QZ", capacity=4)

    # Bind fields that should appear on every line of a sub-logger
    conn_log = log.bind(sid="abc123")
    conn_log.warn(event="relay_dropped", relay="enemySpawn")

Environment:
    LOUNGE_LOG_LEVEL  debug | info | warn | error (default info)
    LOUNGE_LOG_JSON   1/true/yes/on to switch to JSON lines
"""

from __future__ import annotations

import json
import os
import sys
import time

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}
CURRENT_LEVEL = LEVELS.get(os.getenv("LOUNGE_LOG_LEVEL", "info").lower(), 20)
JSON_MODE = os.getenv("LOUNGE_LOG_JSON", "0").lower() in ("1", "true", "yes", "on")


def _format(level: str, fields: dict) -> str:
    # level and ts are reserved; caller fields with those names are dropped
    rec = {k: v for k, v in fields.items() if v is not None and k not in ("level", "ts")}
    ts = int(time.time())
    if JSON_MODE:
        rec["level"] = level
        rec["ts"] = ts
        return json.dumps(rec, separators=(",", ":"), default=str)
    parts = [f"level={level}", f"ts={ts}"]
    for k, v in rec.items():
        if isinstance(v, (int, float)):
            parts.append(f"{k}={v}")
        else:
            s = str(v).replace(" ", "_")
            parts.append(f"{k}={s}")
    return " ".join(parts)


class _Logger:
    def __init__(self, name: str | None = None, context: dict | None = None):
        self.name = name or "lounge"
        self.context = dict(context or {})

    def bind(self, **fields) -> "_Logger":
        """Return a child logger that adds ``fields`` to every record."""
        merged = dict(self.context)
        merged.update(fields)
        return _Logger(self.name, merged)

    def _log(self, lvl: str, **fields):
        if LEVELS[lvl] < CURRENT_LEVEL:
            return
        record = {"logger": self.name}
        record.update(self.context)
        record.update(fields)
        print(_format(lvl, record), file=sys.stdout if lvl != "error" else sys.stderr)

    def debug(self, **fields):
        self._log("debug", **fields)

    def info(self, **fields):
        self._log("info", **fields)

    def warn(self, **fields):
        self._log("warn", **fields)

    def error(self, **fields):
        self._log("error", **fields)


_LOGGER_CACHE: dict[str, _Logger] = {}


def get_logger(name: str) -> _Logger:
    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = _Logger(name)
    return _LOGGER_CACHE[name]


log = get_logger("lounge")
