import importlib
import json
import sys

import pytest

from lounge.models.player import PlayerRecord
from lounge.server import handle_admin_command
from tests.factories import make_creature

# We import run.py as a module and exercise parse_args + main with patched
# start_server / start_admin_shell so we do not actually start networking.


@pytest.fixture()
def run_module():
    # Ensure a clean import each time (run.py reads VERSION once)
    if "run" in sys.modules:
        del sys.modules["run"]
    return importlib.import_module("run")


@pytest.fixture()
def fake_entrypoints(monkeypatch):
    calls = {}

    def fake_start_server(host, port, debug):
        calls["server"] = {"host": host, "port": port, "debug": debug}

    def fake_start_admin_shell():
        calls["admin"] = True

    import lounge.server as server_mod

    monkeypatch.setattr(server_mod, "start_server", fake_start_server)
    monkeypatch.setattr(server_mod, "start_admin_shell", fake_start_admin_shell)
    return calls


def test_version_flag_outputs_version(run_module, capsys):
    with pytest.raises(SystemExit) as exc:
        run_module.parse_args(["--version"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert run_module.__version__ in out
    assert "Camel Lounge Server" in out


def test_default_command_is_server(run_module):
    assert run_module.parse_args([]).command == "server"


def test_server_uses_env_host_and_port(monkeypatch, run_module, fake_entrypoints):
    monkeypatch.setenv("PORT", "5555")
    monkeypatch.setenv("HOST", "127.0.0.1")
    assert run_module.main(["server"]) == 0
    assert fake_entrypoints["server"] == {"host": "127.0.0.1", "port": 5555, "debug": False}


def test_server_flags_override_env(monkeypatch, run_module, fake_entrypoints):
    monkeypatch.setenv("PORT", "5555")
    run_module.main(["server", "--port", "6001", "--host", "0.0.0.0", "--debug"])
    assert fake_entrypoints["server"] == {"host": "0.0.0.0", "port": 6001, "debug": True}


def test_admin_mode_invokes_shell(run_module, fake_entrypoints):
    run_module.main(["admin"])
    assert fake_entrypoints == {"admin": True}


def test_show_player(run_module, capsys):
    from lounge import coordinator

    record = PlayerRecord(username="ada", creatures=[make_creature()])
    coordinator.store.put(record.to_dict())
    assert run_module.main(["show-player", "ada"]) == 0
    out = capsys.readouterr().out
    assert json.loads(out)["username"] == "ada"
    assert run_module.main(["show-player", "nobody"]) == 1


def test_admin_commands(capsys):
    from lounge import coordinator

    coordinator.store.put(PlayerRecord(username="zed", creatures=[make_creature()]).to_dict())
    assert handle_admin_command("list players") is True
    assert "zed" in capsys.readouterr().out
    assert handle_admin_command("delete player zed") is True
    assert "deleted" in capsys.readouterr().out
    assert handle_admin_command("bogus") is True
    assert "Unknown command" in capsys.readouterr().out
    assert handle_admin_command("status") is True
    assert "connections=0" in capsys.readouterr().out
    assert handle_admin_command("exit") is False
