import pytest

from lounge import app, coordinator, socketio
from tests.factories import first_damaging_move, make_creature


def _new_client():
    # Flask-SocketIO provides a test client we can use against the global socketio instance
    return socketio.test_client(app, flask_test_client=app.test_client())


@pytest.fixture()
def client():
    test_client = _new_client()
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


@pytest.fixture()
def second_client():
    test_client = _new_client()
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


def _extract(event_name, received):
    return [p["args"][0] for p in received if p["name"] == event_name]


def test_connect_receives_world_and_lobby_list(client):
    received = client.get_received()
    assert _extract("world:update", received)
    assert _extract("lobbyList", received) == [{"lobbies": []}]


def test_invalid_join_payload(client):
    client.get_received()
    client.emit("player:join", {"username": ""})
    errors = _extract("error", client.get_received())
    assert errors[0]["code"] == "invalid_payload"
    assert errors[0]["field"] == "username"
    assert errors[0]["event"] == "player:join"


def test_join_grants_starter(client):
    client.get_received()
    client.emit("player:join", {"username": "sock_user"})
    received = client.get_received()
    joined = _extract("player:joined", received)[0]
    assert joined["username"] == "sock_user"
    assert len(joined["cigarettes"]) == 1
    assert joined["cigarettes"][0]["level"] == 5
    world = _extract("world:update", received)[-1]
    assert {"username": "sock_user", "position": {"x": 0.0, "y": 0.0}} in world["players"]


def test_move_before_join_is_rejected(client):
    client.get_received()
    client.emit("player:move", {"position": {"x": 1, "y": 2}})
    errors = _extract("error", client.get_received())
    assert errors[0]["code"] == "not_joined"


def test_battle_over_socket(client):
    client.get_received()
    client.emit("player:join", {"username": "sock_battler"})
    client.get_received()
    wild = coordinator.spawner.add(make_creature(level=2, hp=1, attack=1, defense=0, speed=1))
    client.emit("battle:start", {"wildId": wild.id})
    started = _extract("battle:started", client.get_received())[0]
    move = first_damaging_move(coordinator.players[next(iter(coordinator.players))].active)
    assert started["wildId"] == wild.id
    client.emit("battle:action", {"moveId": move.id})
    received = client.get_received()
    assert _extract("battle:update", received)
    ended = _extract("battle:ended", received)[0]
    assert ended["winner"] == "player"
    assert ended["rewards"]["experience"] == 30


def test_lobby_flow_and_host_relay(client, second_client):
    client.get_received()
    second_client.get_received()
    client.emit("createLobby", {"name": "Den", "capacity": 2, "playerName": "Host"})
    created = _extract("lobbyCreated", client.get_received())[0]
    listing = _extract("lobbyListUpdated", second_client.get_received())
    assert listing[-1]["lobbies"][0]["id"] == created["id"]

    second_client.emit("joinLobby", {"lobbyId": created["id"], "playerName": "Guest"})
    joined = _extract("lobbyJoined", second_client.get_received())[0]
    assert [p["name"] for p in joined["players"]] == ["Host", "Guest"]
    host_view = client.get_received()
    assert _extract("playerJoined", host_view)[0]["name"] == "Guest"

    client.emit("enemySpawn", {"enemy": {"id": "e1"}})
    relayed = _extract("enemySpawn", second_client.get_received())
    assert relayed[0]["enemy"] == {"id": "e1"}
    assert relayed[0]["hostId"] == created["hostId"]
    assert _extract("enemySpawn", client.get_received()) == []

    # Non-host relay events are dropped
    second_client.emit("enemyDeath", {"id": "e1"})
    assert _extract("enemyDeath", client.get_received()) == []


def test_host_disconnect_promotes_guest(client, second_client):
    client.emit("createLobby", {"name": "Den"})
    created = _extract("lobbyCreated", client.get_received())[0]
    second_client.emit("joinLobby", {"lobbyId": created["id"]})
    second_client.get_received()
    client.disconnect()
    received = second_client.get_received()
    changed = _extract("hostChanged", received)
    assert len(changed) == 1
    lobby = coordinator.lobbies.get(created["id"])
    assert changed[0]["hostId"] == lobby.host_sid
    assert _extract("playerLeft", received)[0]["playerId"] == created["hostId"]


def test_start_game_requires_host(client, second_client):
    client.emit("createLobby", {"name": "Den"})
    created = _extract("lobbyCreated", client.get_received())[0]
    second_client.emit("joinLobby", {"lobbyId": created["id"]})
    second_client.get_received()
    second_client.emit("startGame")
    errors = _extract("error", second_client.get_received())
    assert errors[0]["code"] == "not_host"
    client.emit("startGame")
    assert _extract("gameStarted", second_client.get_received())[0]["started"] is True


def test_create_lobby_invalid_capacity(client):
    client.get_received()
    client.emit("createLobby", {"name": "Den", "capacity": "lots"})
    errors = _extract("error", client.get_received())
    assert errors[0]["field"] == "capacity"


def test_malformed_relay_from_non_host_gets_no_reply(client, second_client):
    client.emit("createLobby", {"name": "Den"})
    created = _extract("lobbyCreated", client.get_received())[0]
    second_client.emit("joinLobby", {"lobbyId": created["id"]})
    second_client.get_received()
    client.get_received()
    second_client.emit("playerMove", {"x": "left"})
    assert _extract("error", second_client.get_received()) == []
    assert _extract("playerMove", client.get_received()) == []


def test_malformed_relay_from_host_is_rejected(client, second_client):
    client.emit("createLobby", {"name": "Den"})
    created = _extract("lobbyCreated", client.get_received())[0]
    second_client.emit("joinLobby", {"lobbyId": created["id"]})
    second_client.get_received()
    client.get_received()
    client.emit("playerMove", {"x": "left"})
    errors = _extract("error", client.get_received())
    assert errors[0]["code"] == "invalid_payload"
    assert _extract("playerMove", second_client.get_received()) == []
