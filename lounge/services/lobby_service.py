"""Lobby (session group) registry.

A lobby is a capacity-bounded group of connections sharing one game instance
with a single authoritative host. The registry owns lobby state only; it does
not emit anything. The session coordinator calls it and broadcasts snapshots.

Rules:
    * The creator is the first member and the host. Creation is never
      capacity checked.
    * Joins fail with ``LobbyNotFound``, ``LobbyFull`` or
      ``LobbyAlreadyStarted``; a successful join appends a non-host member.
    * Member order is host-transfer priority. When the host leaves, the
      earliest-joined remaining member becomes host. An empty lobby is deleted.
    * A connection is in at most one lobby. Creating or joining another one
      leaves the current lobby first.
    * Only the host may start the game or emit world-mutating relay events.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from lounge.services.errors import (
    LobbyAlreadyStarted,
    LobbyFull,
    LobbyNotFound,
    NotInLobby,
    NotLobbyHost,
)

LOBBY_ID_ALPHABET = string.ascii_uppercase + string.digits
LOBBY_ID_LENGTH = 6


@dataclass
class LobbyMember:
    sid: str
    name: str
    is_host: bool = False
    cosmetic: Optional[str] = None
    joined_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.sid, "name": self.name, "isHost": self.is_host, "cosmetic": self.cosmetic}


@dataclass
class Lobby:
    id: str
    host_sid: str
    name: str
    capacity: int
    level: int = 1
    members: List[LobbyMember] = field(default_factory=list)
    started: bool = False
    world_state: Optional[Any] = None
    created_at: float = field(default_factory=time.time)

    def member(self, sid: str) -> Optional[LobbyMember]:
        for m in self.members:
            if m.sid == sid:
                return m
        return None

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.capacity

    @property
    def joinable(self) -> bool:
        return not self.started and not self.is_full

    def summary(self) -> Dict[str, Any]:
        """Listing entry for the lobby browser."""
        host = self.member(self.host_sid)
        return {
            "id": self.id,
            "name": self.name,
            "hostName": host.name if host else None,
            "playerCount": len(self.members),
            "capacity": self.capacity,
            "level": self.level,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "hostId": self.host_sid,
            "capacity": self.capacity,
            "level": self.level,
            "started": self.started,
            "players": [m.to_dict() for m in self.members],
            "worldState": self.world_state,
        }


@dataclass(frozen=True)
class LeaveResult:
    lobby: Lobby
    deleted: bool
    new_host_sid: Optional[str] = None


class LobbyRegistry:
    def __init__(self, rng=None):
        self.rng = rng or random
        self._lobbies: Dict[str, Lobby] = {}
        self._by_sid: Dict[str, str] = {}

    # -- lookups ----------------------------------------------------------------------------

    def get(self, lobby_id: str) -> Optional[Lobby]:
        if not lobby_id:
            return None
        return self._lobbies.get(lobby_id.strip().upper())

    def lobby_for(self, sid: str) -> Optional[Lobby]:
        lobby_id = self._by_sid.get(sid)
        return self._lobbies.get(lobby_id) if lobby_id else None

    def all(self) -> List[Lobby]:
        return list(self._lobbies.values())

    def __len__(self) -> int:
        return len(self._lobbies)

    def __contains__(self, lobby_id: str) -> bool:
        return self.get(lobby_id) is not None

    def clear(self):
        self._lobbies.clear()
        self._by_sid.clear()

    def _new_id(self) -> str:
        while True:
            lobby_id = "".join(self.rng.choice(LOBBY_ID_ALPHABET) for _ in range(LOBBY_ID_LENGTH))
            if lobby_id not in self._lobbies:
                return lobby_id

    # -- lifecycle --------------------------------------------------------------------------

    def create_lobby(self, host_sid: str, name: str, capacity: int, level: int = 1, host_name: str = "") -> Lobby:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.leave_lobby(host_sid)
        lobby = Lobby(
            id=self._new_id(),
            host_sid=host_sid,
            name=name,
            capacity=capacity,
            level=level,
            members=[LobbyMember(sid=host_sid, name=host_name or name, is_host=True)],
        )
        self._lobbies[lobby.id] = lobby
        self._by_sid[host_sid] = lobby.id
        return lobby

    def check_join(self, sid: str, lobby_id: str) -> Lobby:
        """Lobby ``sid`` may join, or raise why not. Current members always pass."""
        lobby = self.get(lobby_id)
        if lobby is None:
            raise LobbyNotFound()
        if lobby.member(sid) is not None:
            return lobby
        if lobby.started:
            raise LobbyAlreadyStarted()
        if lobby.is_full:
            raise LobbyFull()
        return lobby

    def join_lobby(self, sid: str, lobby_id: str, name: str) -> Lobby:
        """Add ``sid`` to a lobby, leaving whichever lobby it was in before."""
        lobby = self.check_join(sid, lobby_id)
        if lobby.member(sid) is not None:
            return lobby
        self.leave_lobby(sid)
        lobby.members.append(LobbyMember(sid=sid, name=name))
        self._by_sid[sid] = lobby.id
        return lobby

    def leave_lobby(self, sid: str) -> Optional[LeaveResult]:
        """Remove ``sid`` from its lobby; ``None`` if it was not in one."""
        lobby_id = self._by_sid.pop(sid, None)
        if lobby_id is None:
            return None
        lobby = self._lobbies[lobby_id]
        lobby.members = [m for m in lobby.members if m.sid != sid]
        if not lobby.members:
            del self._lobbies[lobby_id]
            return LeaveResult(lobby=lobby, deleted=True)
        new_host = None
        if lobby.host_sid == sid:
            heir = lobby.members[0]
            heir.is_host = True
            lobby.host_sid = heir.sid
            new_host = heir.sid
        return LeaveResult(lobby=lobby, deleted=False, new_host_sid=new_host)

    def start_game(self, sid: str) -> Lobby:
        lobby = self.lobby_for(sid)
        if lobby is None:
            raise NotInLobby()
        if lobby.host_sid != sid:
            raise NotLobbyHost()
        if lobby.started:
            raise LobbyAlreadyStarted()
        lobby.started = True
        return lobby

    # -- host authority ---------------------------------------------------------------------

    def host_lobby(self, sid: str) -> Optional[Lobby]:
        """Lobby ``sid`` hosts, or ``None`` if it is not a host anywhere."""
        lobby = self.lobby_for(sid)
        if lobby is None or lobby.host_sid != sid:
            return None
        return lobby

    def record_world_state(self, sid: str, state: Any) -> Optional[Lobby]:
        lobby = self.host_lobby(sid)
        if lobby is not None:
            lobby.world_state = state
        return lobby

    def update_member(self, sid: str, name: Optional[str] = None, cosmetic: Optional[str] = None) -> Optional[Lobby]:
        lobby = self.lobby_for(sid)
        if lobby is None:
            return None
        member = lobby.member(sid)
        if name:
            member.name = name
        if cosmetic is not None:
            member.cosmetic = cosmetic
        return lobby

    # -- listings ---------------------------------------------------------------------------

    def available_lobbies(self) -> List[Dict[str, Any]]:
        """Joinable lobbies (not started, not full), oldest first."""
        rows = [lb for lb in self._lobbies.values() if lb.joinable]
        rows.sort(key=lambda lb: lb.created_at)
        return [lb.summary() for lb in rows]

    def listing_signature(self) -> Tuple[Tuple[str, int], ...]:
        return tuple(sorted((lb.id, len(lb.members)) for lb in self._lobbies.values() if lb.joinable))
