"""Transport adapter over Flask-SocketIO.

The session coordinator never imports Flask-SocketIO directly; it talks to a
``Transport`` with five operations. ``SocketIOTransport`` maps them onto the
global ``SocketIO`` instance so they work both inside event handlers and from
background tasks (no request context needed).
"""

from __future__ import annotations

from typing import Any, Optional, Protocol


class Transport(Protocol):
    def send(self, sid: str, event: str, payload: Any = None) -> None: ...

    def broadcast_to_room(self, room: str, event: str, payload: Any = None, exclude_sid: Optional[str] = None) -> None: ...

    def broadcast_to_all(self, event: str, payload: Any = None) -> None: ...

    def join_room(self, sid: str, room: str) -> None: ...

    def leave_room(self, sid: str, room: str) -> None: ...


class SocketIOTransport:
    def __init__(self, socketio, namespace: str = "/"):
        self.socketio = socketio
        self.namespace = namespace

    def send(self, sid, event, payload=None):
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def broadcast_to_room(self, room, event, payload=None, exclude_sid=None):
        self.socketio.emit(event, payload, to=room, skip_sid=exclude_sid, namespace=self.namespace)

    def broadcast_to_all(self, event, payload=None):
        self.socketio.emit(event, payload, namespace=self.namespace)

    def join_room(self, sid, room):
        self.socketio.server.enter_room(sid, room, namespace=self.namespace)

    def leave_room(self, sid, room):
        self.socketio.server.leave_room(sid, room, namespace=self.namespace)
