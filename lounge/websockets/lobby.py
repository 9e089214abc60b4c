"""Socket.IO connection and lobby handlers.

Events:
    - connect / disconnect
    - createLobby      { name, capacity?, level?, playerName? } -> lobbyCreated
    - joinLobby        { lobbyId, playerName? }                 -> lobbyJoined, playerJoined, lobbyUpdate
    - leaveLobby                                                -> lobbyLeft, playerLeft, hostChanged?
    - startGame                                                 -> gameStarted (lobby room)
    - listLobbies                                               -> lobbyList
    - requestLobbyInfo                                          -> lobbyUpdate
    - playerMove, gameState, enemySpawn, enemyDeath, bulletRemoved, xpOrbPickedUp
        Host-only relay; rebroadcast to the rest of the lobby with ``hostId``.

Lobby list changes are pushed to every connection as ``lobbyListUpdated``.
"""

from flask import request

from lounge import coordinator, socketio
from lounge.logging_utils import get_logger
from lounge.services.coordinator import RELAY_EVENTS

from .validation import CREATE_LOBBY, HOST_PLAYER_MOVE, JOIN_LOBBY, RELAY, validate

_log = get_logger("ws.lobby")

RELAY_SCHEMAS = {"playerMove": HOST_PLAYER_MOVE}


@socketio.on("connect")
def handle_connect(auth=None):
    coordinator.connect(request.sid)
    # Fresh connections get the current world and lobby list without asking
    coordinator.send_world(request.sid)
    coordinator.list_lobbies(request.sid)


@socketio.on("disconnect")
def handle_disconnect(*args):
    coordinator.disconnect(request.sid)


@socketio.on("createLobby")
def handle_create_lobby(data=None):
    ok, result = validate(data if data is not None else {}, CREATE_LOBBY)
    if not ok:
        coordinator.reject(request.sid, "createLobby", result)
        return
    coordinator.create_lobby(
        request.sid,
        result["name"],
        capacity=result.get("capacity"),
        level=result.get("level", 1),
        player_name=result.get("playerName"),
    )


@socketio.on("joinLobby")
def handle_join_lobby(data=None):
    ok, result = validate(data if data is not None else {}, JOIN_LOBBY)
    if not ok:
        coordinator.reject(request.sid, "joinLobby", result)
        return
    coordinator.join_lobby(request.sid, result["lobbyId"], player_name=result.get("playerName"))


@socketio.on("leaveLobby")
def handle_leave_lobby(data=None):
    coordinator.leave_lobby(request.sid)


@socketio.on("startGame")
def handle_start_game(data=None):
    coordinator.start_game(request.sid)


@socketio.on("listLobbies")
def handle_list_lobbies(data=None):
    coordinator.list_lobbies(request.sid)


@socketio.on("requestLobbyInfo")
def handle_request_lobby_info(data=None):
    coordinator.request_lobby_info(request.sid)


def _make_relay_handler(event):
    schema = RELAY_SCHEMAS.get(event, RELAY)

    def handler(data=None):
        # Non-host relays are dropped before validation so they never get a reply
        if not coordinator.is_host(request.sid):
            _log.debug(event="relay_dropped", sid=request.sid, relay=event)
            return
        payload = data if data is not None else {}
        ok, result = validate(payload, schema)
        if not ok:
            coordinator.reject(request.sid, event, result)
            return
        coordinator.relay(request.sid, event, payload)

    handler.__name__ = f"handle_relay_{event}"
    return handler


for _event in RELAY_EVENTS:
    socketio.on_event(_event, _make_relay_handler(_event))
_log.debug(event="relay_handlers_registered", count=len(RELAY_EVENTS))
