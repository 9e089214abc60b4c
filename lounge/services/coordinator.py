"""
project: Camel Lounge
module: coordinator.py
License: MIT

Session coordinator: the single entry point for every inbound socket event.

It owns the connection -> session map, the joined-player map, the active
battle map, the lobby registry and the wild spawn pool, and is the only code
that talks to the transport and the persistence store. Components below it
(registry, battle engine, spawn manager) raise ``GameError`` subclasses; the
public handlers here translate those into an ``error`` event for the calling
connection and return ``None``.

Rooms: each lobby maps to the transport room ``lobby:<id>``. World updates
(``world:update``) and lobby list changes (``lobbyListUpdated``) go to every
connection.
"""

from __future__ import annotations

import functools
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lounge.logging_utils import get_logger
from lounge.models.creature import STARTER_LEVEL, starter_creature
from lounge.models.player import PlayerRecord
from lounge.services import battle_service
from lounge.services.battle_service import PLAYER, Battle
from lounge.services.errors import (
    GameError,
    NoActiveCigarette,
    NotInLobby,
    NotJoined,
    PersistenceError,
    WildNotFound,
)
from lounge.services.lobby_service import Lobby, LobbyRegistry
from lounge.services.spawn_service import SpawnManager

_log = get_logger("coordinator")

# Host-authoritative events relayed verbatim to the rest of the lobby
RELAY_EVENTS = (
    "playerMove",
    "gameState",
    "enemySpawn",
    "enemyDeath",
    "bulletRemoved",
    "xpOrbPickedUp",
)


def room_for(lobby_id: str) -> str:
    return f"lobby:{lobby_id}"


@dataclass
class ConnectionSession:
    sid: str
    username: Optional[str] = None
    lobby_id: Optional[str] = None
    position: Dict[str, float] = field(default_factory=lambda: {"x": 0.0, "y": 0.0})
    facing_right: bool = False
    cosmetic: Optional[str] = None
    display_name: Optional[str] = None
    connected_at: float = field(default_factory=time.time)

    @property
    def label(self) -> str:
        return self.display_name or self.username or f"Player {self.sid[:6]}"


def synchronized(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return fn(self, *args, **kwargs)

    return wrapper


def reports_errors(event: str):
    """Turn a raised ``GameError`` into an ``error`` event for the caller.

    The wrapped handler runs under the coordinator lock.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, sid, *args, **kwargs):
            with self._lock:
                try:
                    return fn(self, sid, *args, **kwargs)
                except GameError as exc:
                    self.fail(sid, event, exc)
                    return None

        return wrapper

    return decorator


class SessionCoordinator:
    def __init__(
        self,
        transport,
        store,
        spawner: Optional[SpawnManager] = None,
        lobbies: Optional[LobbyRegistry] = None,
        rng=None,
        starter_level: int = STARTER_LEVEL,
        default_capacity: int = 4,
        max_capacity: int = 16,
    ):
        self.transport = transport
        self.store = store
        self.rng = rng or random
        self.spawner = spawner or SpawnManager(rng=self.rng)
        self.lobbies = lobbies or LobbyRegistry(rng=self.rng)
        self.starter_level = starter_level
        self.default_capacity = default_capacity
        self.max_capacity = max_capacity
        self.sessions: Dict[str, ConnectionSession] = {}
        self.players: Dict[str, PlayerRecord] = {}
        self.battles: Dict[str, Battle] = {}
        self._last_listing = ()
        # Socket handlers and the spawn ticker run on separate threads; every
        # public entry point holds this while touching the maps above.
        self._lock = threading.RLock()

    @synchronized
    def reset(self):
        """Drop all in-memory state (used between tests and by the admin shell)."""
        self.sessions.clear()
        self.players.clear()
        self.battles.clear()
        self.lobbies.clear()
        self.spawner.clear()
        self._last_listing = ()

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------
    def fail(self, sid: str, event: str, exc: GameError):
        self.transport.send(sid, "error", {"event": event, "code": exc.code, "message": exc.message})
        _log.info(event="request_rejected", sid=sid, request=event, code=exc.code)

    def reject(self, sid: str, event: str, result: Dict[str, Any]):
        """Report a payload that failed schema validation."""
        self.transport.send(
            sid,
            "error",
            {
                "event": event,
                "code": "invalid_payload",
                "message": f"Invalid {event}: {result['error']}",
                "field": result["field"],
                "reason": result["code"],
            },
        )
        _log.debug(event="payload_rejected", sid=sid, request=event, field=result["field"])

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    @synchronized
    def connect(self, sid: str) -> ConnectionSession:
        session = self.sessions.get(sid)
        if session is None:
            session = ConnectionSession(sid=sid)
            self.sessions[sid] = session
            _log.info(event="connect", sid=sid, connections=len(self.sessions))
        return session

    @synchronized
    def disconnect(self, sid: str) -> bool:
        """Tear down a connection. Returns False when it was already gone."""
        session = self.sessions.pop(sid, None)
        if session is None:
            return False
        log = _log.bind(sid=sid, username=session.username)
        self.battles.pop(sid, None)
        self._leave(session)
        record = self.players.pop(sid, None)
        if record is not None:
            record.position = dict(session.position)
            try:
                self.store.put(record.to_dict())
            except PersistenceError:
                log.warn(event="position_not_saved")
        log.info(event="disconnect", connections=len(self.sessions))
        self.broadcast_world()
        return True

    def _session(self, sid: str) -> ConnectionSession:
        return self.sessions.get(sid) or self.connect(sid)

    def _record(self, sid: str) -> PlayerRecord:
        record = self.players.get(sid)
        if record is None:
            raise NotJoined()
        return record

    # ------------------------------------------------------------------
    # World
    # ------------------------------------------------------------------
    @reports_errors("player:join")
    def player_join(self, sid: str, username: str) -> Optional[PlayerRecord]:
        session = self._session(sid)
        data = self.store.get(username)
        created = data is None
        record = PlayerRecord(username=username) if created else PlayerRecord.from_dict(data)
        if not record.creatures:
            record.add_creature(starter_creature(level=self.starter_level, rng=self.rng))
            self.store.put(record.to_dict())
        session.username = username
        session.position = dict(record.position)
        self.players[sid] = record
        payload = record.to_dict()
        payload["created"] = created
        self.transport.send(sid, "player:joined", payload)
        _log.info(event="player_join", sid=sid, username=username, created=created, owned=len(record.creatures))
        self.broadcast_world()
        return record

    @reports_errors("player:move")
    def player_move(self, sid: str, position: Dict[str, float]) -> Optional[Dict[str, float]]:
        record = self._record(sid)
        session = self._session(sid)
        pos = {"x": float(position["x"]), "y": float(position["y"])}
        session.position = pos
        record.position = dict(pos)
        self.broadcast_world()
        return pos

    @synchronized
    def world_snapshot(self) -> Dict[str, Any]:
        players = []
        for sid, record in self.players.items():
            session = self.sessions.get(sid)
            position = session.position if session else record.position
            players.append({"username": record.username, "position": dict(position)})
        return {"players": players, "wildCigarettes": self.spawner.snapshot()}

    @synchronized
    def broadcast_world(self):
        self.transport.broadcast_to_all("world:update", self.world_snapshot())

    @synchronized
    def send_world(self, sid: str):
        self.transport.send(sid, "world:update", self.world_snapshot())

    @synchronized
    def counts(self) -> Dict[str, int]:
        return {
            "connections": len(self.sessions),
            "players": len(self.players),
            "battles": len(self.battles),
            "lobbies": len(self.lobbies),
            "wildCigarettes": len(self.spawner),
            "spawnGeneration": self.spawner.generation,
        }

    @synchronized
    def spawn_tick(self):
        self.spawner.regenerate()
        self.broadcast_world()

    # ------------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------------
    @reports_errors("battle:start")
    def start_battle(self, sid: str, wild_id: str) -> Optional[Battle]:
        record = self._record(sid)
        active = record.active
        if active is None:
            raise NoActiveCigarette()
        spawn = self.spawner.find(wild_id)
        if spawn is None:
            raise WildNotFound()
        battle = Battle(active, spawn.creature, wild_id=spawn.id, rng=self.rng)
        self.battles[sid] = battle
        self.transport.send(
            sid,
            "battle:started",
            {
                "wildId": battle.wild_id,
                "playerCigarette": battle.player.to_dict(),
                "wildCigarette": battle.wild.to_dict(),
                "turnOrder": list(battle.turn_order),
            },
        )
        _log.info(event="battle_start", sid=sid, wild=battle.wild_id, turn_order=",".join(battle.turn_order))
        return battle

    @reports_errors("battle:action")
    def battle_action(self, sid: str, move_id: str) -> List[battle_service.LogEntry]:
        battle = self.battles.get(sid)
        if battle is None:
            _log.debug(event="battle_action_ignored", sid=sid, reason="no_battle")
            return []
        entries = battle.exchange(move_id)
        if not entries:
            _log.debug(event="battle_action_ignored", sid=sid, reason="unknown_move", move=move_id)
        for entry in entries:
            self.transport.send(sid, "battle:update", entry.to_dict())
        if battle.is_concluded():
            self._conclude(sid, battle)
        return entries

    def _conclude(self, sid: str, battle: Battle):
        self.battles.pop(sid, None)
        winner = battle.winner()
        rewards = None
        if winner == PLAYER:
            raw = battle.compute_rewards()
            rewards = {
                "experience": raw["experience"],
                "levelUp": raw["level_up"],
                "levelUpData": raw["level_up_data"],
            }
            record = self.players.get(sid)
            if record is not None:
                record.replace_creature(battle.player.copy())
                try:
                    self.store.put(record.to_dict())
                except PersistenceError:
                    _log.warn(event="battle_result_not_saved", sid=sid, username=record.username)
            self.spawner.remove(battle.wild_id)
        self.transport.send(sid, "battle:ended", {"winner": winner, "rewards": rewards})
        _log.info(
            event="battle_end",
            sid=sid,
            winner=winner,
            exchanges=len(battle.log),
            seconds=round(time.time() - battle.started_at, 2),
        )
        if winner == PLAYER:
            self.broadcast_world()

    @reports_errors("cigarette:catch")
    def attempt_catch(self, sid: str, wild_id: str) -> Optional[bool]:
        record = self._record(sid)
        spawn = self.spawner.find(wild_id)
        if spawn is None:
            raise WildNotFound()
        battle = self.battles.get(sid)
        in_battle = battle is not None and battle.wild_id == wild_id
        target = battle.wild if in_battle else spawn.creature
        rate = battle_service.catch_rate(target)
        if not battle_service.attempt_catch(target, rng=self.rng):
            self.transport.send(sid, "cigarette:escaped", {"wildId": wild_id})
            _log.info(event="catch_escaped", sid=sid, wild=wild_id, rate=round(rate, 3))
            return False
        caught = target.copy()
        record.add_creature(caught)
        try:
            self.store.put(record.to_dict())
        except PersistenceError:
            record.remove_creature(caught.id)
            raise
        self.spawner.remove(wild_id)
        if in_battle:
            self.battles.pop(sid, None)
        self.transport.send(sid, "cigarette:caught", caught.to_dict())
        _log.info(event="catch_success", sid=sid, wild=wild_id, rate=round(rate, 3), owned=len(record.creatures))
        self.broadcast_world()
        return True

    # ------------------------------------------------------------------
    # Lobbies
    # ------------------------------------------------------------------
    def clamp_capacity(self, capacity: Optional[int]) -> int:
        if capacity is None:
            capacity = self.default_capacity
        return max(1, min(int(capacity), self.max_capacity))

    def _broadcast_lobby(self, lobby: Lobby):
        self.transport.broadcast_to_room(room_for(lobby.id), "lobbyUpdate", lobby.to_dict())

    @synchronized
    def publish_listing(self):
        """Broadcast the joinable lobby list when it differs from the last one sent."""
        signature = self.lobbies.listing_signature()
        if signature == self._last_listing:
            return False
        self._last_listing = signature
        self.transport.broadcast_to_all("lobbyListUpdated", {"lobbies": self.lobbies.available_lobbies()})
        return True

    @reports_errors("createLobby")
    def create_lobby(
        self,
        sid: str,
        name: str,
        capacity: Optional[int] = None,
        level: int = 1,
        player_name: Optional[str] = None,
    ) -> Optional[Lobby]:
        session = self._session(sid)
        if player_name:
            session.display_name = player_name
        capacity = self.clamp_capacity(capacity)
        self._move_out(session)
        lobby = self.lobbies.create_lobby(sid, name, capacity, level=level, host_name=session.label)
        lobby.member(sid).cosmetic = session.cosmetic
        session.lobby_id = lobby.id
        self.transport.join_room(sid, room_for(lobby.id))
        self.transport.send(sid, "lobbyCreated", lobby.to_dict())
        _log.info(event="lobby_create", sid=sid, lobby=lobby.id, capacity=lobby.capacity, lobby_level=lobby.level)
        self.publish_listing()
        return lobby

    @reports_errors("joinLobby")
    def join_lobby(self, sid: str, lobby_id: str, player_name: Optional[str] = None) -> Optional[Lobby]:
        session = self._session(sid)
        if player_name:
            session.display_name = player_name
        lobby = self.lobbies.check_join(sid, lobby_id)
        if lobby.member(sid) is not None:
            self.transport.send(sid, "lobbyJoined", lobby.to_dict())
            return lobby
        self._move_out(session)
        lobby = self.lobbies.join_lobby(sid, lobby.id, session.label)
        member = lobby.member(sid)
        member.cosmetic = session.cosmetic
        session.lobby_id = lobby.id
        room = room_for(lobby.id)
        self.transport.join_room(sid, room)
        self.transport.send(sid, "lobbyJoined", lobby.to_dict())
        self.transport.broadcast_to_room(room, "playerJoined", member.to_dict(), exclude_sid=sid)
        self._broadcast_lobby(lobby)
        _log.info(event="lobby_join", sid=sid, lobby=lobby.id, members=len(lobby.members))
        self.publish_listing()
        return lobby

    def _leave(self, session: ConnectionSession):
        result = self.lobbies.leave_lobby(session.sid)
        if result is None:
            return None
        lobby = result.lobby
        room = room_for(lobby.id)
        self.transport.leave_room(session.sid, room)
        session.lobby_id = None
        if result.deleted:
            _log.info(event="lobby_closed", lobby=lobby.id)
        else:
            self.transport.broadcast_to_room(room, "playerLeft", {"playerId": session.sid})
            if result.new_host_sid:
                self.transport.broadcast_to_room(room, "hostChanged", {"hostId": result.new_host_sid})
                _log.info(event="host_transfer", lobby=lobby.id, host=result.new_host_sid)
            self._broadcast_lobby(lobby)
        self.publish_listing()
        return result

    def _move_out(self, session: ConnectionSession):
        """Leave the current lobby, if any, before creating or joining another."""
        result = self._leave(session)
        if result is not None:
            self.transport.send(session.sid, "lobbyLeft", {"lobbyId": result.lobby.id})
            _log.info(event="lobby_switch", sid=session.sid, lobby=result.lobby.id, deleted=result.deleted)
        return result

    @reports_errors("leaveLobby")
    def leave_lobby(self, sid: str):
        session = self._session(sid)
        result = self._leave(session)
        if result is None:
            raise NotInLobby()
        self.transport.send(sid, "lobbyLeft", {"lobbyId": result.lobby.id})
        _log.info(event="lobby_leave", sid=sid, lobby=result.lobby.id, deleted=result.deleted)
        return result

    @reports_errors("startGame")
    def start_game(self, sid: str) -> Optional[Lobby]:
        lobby = self.lobbies.start_game(sid)
        self.transport.broadcast_to_room(room_for(lobby.id), "gameStarted", lobby.to_dict())
        _log.info(event="game_start", lobby=lobby.id, members=len(lobby.members))
        self.publish_listing()
        return lobby

    @synchronized
    def lobby_listing(self) -> List[Dict[str, Any]]:
        return self.lobbies.available_lobbies()

    @synchronized
    def list_lobbies(self, sid: str) -> List[Dict[str, Any]]:
        lobbies = self.lobby_listing()
        self.transport.send(sid, "lobbyList", {"lobbies": lobbies})
        return lobbies

    @reports_errors("requestLobbyInfo")
    def request_lobby_info(self, sid: str) -> Optional[Lobby]:
        lobby = self.lobbies.lobby_for(sid)
        if lobby is None:
            raise NotInLobby()
        self.transport.send(sid, "lobbyUpdate", lobby.to_dict())
        return lobby

    @synchronized
    def update_player_info(self, sid: str, player_name: Optional[str] = None, cosmetic: Optional[str] = None):
        session = self._session(sid)
        if player_name:
            session.display_name = player_name
        if cosmetic is not None:
            session.cosmetic = cosmetic
        lobby = self.lobbies.update_member(sid, name=player_name, cosmetic=cosmetic)
        if lobby is not None:
            self._broadcast_lobby(lobby)
        _log.debug(event="player_info", sid=sid, name=player_name, cosmetic=cosmetic)
        return session

    @synchronized
    def is_host(self, sid: str) -> bool:
        return self.lobbies.host_lobby(sid) is not None

    @synchronized
    def relay(self, sid: str, event: str, payload: Dict[str, Any]) -> bool:
        """Forward a host-authoritative event to the rest of the host's lobby.

        Events from anyone but the current host are dropped without a reply.
        """
        if event not in RELAY_EVENTS:
            raise ValueError(f"{event!r} is not a relay event")
        lobby = self.lobbies.host_lobby(sid)
        if lobby is None:
            _log.debug(event="relay_dropped", sid=sid, relay=event)
            return False
        if event == "gameState":
            self.lobbies.record_world_state(sid, payload)
        elif event == "playerMove":
            session = self._session(sid)
            if "x" in payload and "y" in payload:
                session.position = {"x": float(payload["x"]), "y": float(payload["y"])}
            session.facing_right = bool(payload.get("facingRight", session.facing_right))
        out = dict(payload)
        out["hostId"] = sid
        self.transport.broadcast_to_room(room_for(lobby.id), event, out, exclude_sid=sid)
        return True
