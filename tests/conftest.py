import os
import random
import sys
import tempfile

import pytest

# Ensure repository root importable early
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Isolate the test database before the app module computes its URI
_TMP_DIR = tempfile.mkdtemp(prefix="lounge-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'lounge_test.db')}")

from lounge import coordinator as global_coordinator  # noqa: E402
from lounge import create_app, db  # noqa: E402
from lounge.models.models import StoredPlayer  # noqa: E402
from lounge.services.coordinator import SessionCoordinator  # noqa: E402
from lounge.services.spawn_service import SpawnManager  # noqa: E402
from tests.factories import MemoryStore, RecordingTransport  # noqa: E402


@pytest.fixture(scope="session")
def test_app():
    app = create_app()
    app.config.update({"TESTING": True})
    return app


@pytest.fixture(autouse=True)
def _push_app_context(test_app):
    ctx = test_app.app_context()
    ctx.push()
    try:
        yield
    finally:
        ctx.pop()


@pytest.fixture(autouse=True)
def _clean_state(test_app, _push_app_context):
    global_coordinator.reset()
    yield
    global_coordinator.reset()
    db.session.rollback()
    StoredPlayer.query.delete()
    db.session.commit()


@pytest.fixture()
def client(test_app):
    return test_app.test_client()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def coordinator(transport, store):
    rng = random.Random(1234)
    return SessionCoordinator(
        transport=transport,
        store=store,
        spawner=SpawnManager(rng=random.Random(7)),
        rng=rng,
    )
