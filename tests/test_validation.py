from lounge.websockets.validation import (
    CREATE_LOBBY,
    HOST_PLAYER_MOVE,
    PLAYER_JOIN,
    PLAYER_MOVE,
    UPDATE_PLAYER_INFO,
    validate,
)


def test_payload_must_be_object():
    ok, err = validate(["ada"], PLAYER_JOIN)
    assert not ok
    assert err == {"field": "__root__", "error": "payload must be an object", "code": "type"}


def test_required_and_empty_strings():
    assert validate({}, PLAYER_JOIN)[1]["code"] == "required"
    assert validate({"username": "   "}, PLAYER_JOIN)[1]["code"] == "empty"
    assert validate({"username": "x" * 33}, PLAYER_JOIN)[1]["code"] == "max_len"
    ok, out = validate({"username": "  ada "}, PLAYER_JOIN)
    assert ok and out == {"username": "ada"}


def test_nested_position_schema():
    ok, out = validate({"position": {"x": 1, "y": 2.5}}, PLAYER_MOVE)
    assert ok
    assert out["position"] == {"x": 1, "y": 2.5}
    ok, err = validate({"position": {"x": "1", "y": 2}}, PLAYER_MOVE)
    assert not ok
    assert err["field"] == "position.x"
    ok, err = validate({"position": {"x": 1}}, PLAYER_MOVE)
    assert err == {"field": "position.y", "error": "missing required field", "code": "required"}


def test_bool_is_not_a_number():
    ok, err = validate({"position": {"x": True, "y": 0}}, PLAYER_MOVE)
    assert not ok and err["code"] == "type"
    ok, err = validate({"name": "Den", "capacity": False}, CREATE_LOBBY)
    assert not ok and err["field"] == "capacity"


def test_numeric_bounds():
    assert validate({"name": "Den", "capacity": 0}, CREATE_LOBBY)[1]["code"] == "min"
    assert validate({"name": "Den", "level": 101}, CREATE_LOBBY)[1]["code"] == "max"
    ok, out = validate({"name": "Den", "capacity": 6, "level": 3}, CREATE_LOBBY)
    assert ok and out == {"name": "Den", "capacity": 6, "level": 3}


def test_optional_fields_may_be_null():
    ok, out = validate({"playerName": None, "selectedCosmetic": ""}, UPDATE_PLAYER_INFO)
    assert ok
    assert out == {"selectedCosmetic": ""}


def test_bool_field():
    assert validate({"x": 1, "y": 1, "facingRight": "yes"}, HOST_PLAYER_MOVE)[1]["code"] == "type"
    assert validate({"x": 1, "y": 1, "facingRight": False}, HOST_PLAYER_MOVE)[0] is True


def test_unsupported_schema_type():
    ok, err = validate({"a": 1}, {"a": ("decimal", True)})
    assert not ok and err["code"] == "schema"
