"""Socket.IO world and battle handlers.

Events:
    - player:join       { username }          -> player:joined, world:update
    - player:move       { position: {x, y} }  -> world:update
    - battle:start      { wildId }            -> battle:started
    - battle:action     { moveId }            -> battle:update (per entry), battle:ended
    - cigarette:catch   { wildId }            -> cigarette:caught | cigarette:escaped
    - updatePlayerInfo  { playerName?, selectedCosmetic? } -> lobbyUpdate (lobby room)

Invalid payloads are answered with ``error`` { event, code: invalid_payload, field, message }.
"""

from flask import request

from lounge import coordinator, socketio
from lounge.logging_utils import get_logger

from .validation import (
    BATTLE_ACTION,
    BATTLE_START,
    CIGARETTE_CATCH,
    PLAYER_JOIN,
    PLAYER_MOVE,
    UPDATE_PLAYER_INFO,
    validate,
)

_log = get_logger("ws.game")


def _checked(event, data, schema):
    ok, result = validate(data if data is not None else {}, schema)
    if not ok:
        coordinator.reject(request.sid, event, result)
        return None
    return result


@socketio.on("player:join")
def handle_player_join(data=None):
    result = _checked("player:join", data, PLAYER_JOIN)
    if result is None:
        return
    coordinator.player_join(request.sid, result["username"])


@socketio.on("player:move")
def handle_player_move(data=None):
    result = _checked("player:move", data, PLAYER_MOVE)
    if result is None:
        return
    coordinator.player_move(request.sid, result["position"])


@socketio.on("battle:start")
def handle_battle_start(data=None):
    result = _checked("battle:start", data, BATTLE_START)
    if result is None:
        return
    coordinator.start_battle(request.sid, result["wildId"])


@socketio.on("battle:action")
def handle_battle_action(data=None):
    result = _checked("battle:action", data, BATTLE_ACTION)
    if result is None:
        return
    coordinator.battle_action(request.sid, result["moveId"])


@socketio.on("cigarette:catch")
def handle_cigarette_catch(data=None):
    result = _checked("cigarette:catch", data, CIGARETTE_CATCH)
    if result is None:
        return
    coordinator.attempt_catch(request.sid, result["wildId"])


@socketio.on("updatePlayerInfo")
def handle_update_player_info(data=None):
    result = _checked("updatePlayerInfo", data, UPDATE_PLAYER_INFO)
    if result is None:
        return
    coordinator.update_player_info(
        request.sid,
        player_name=result.get("playerName"),
        cosmetic=result.get("selectedCosmetic"),
    )
    _log.debug(event="update_player_info", sid=request.sid)
