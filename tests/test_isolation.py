"""Per-test cleanup: stored players and coordinator state never leak between tests."""

from lounge import coordinator, db
from lounge.models.models import StoredPlayer


def test_writes_a_player_and_a_session():
    db.session.add(StoredPlayer(username="leaky", data="{}"))
    db.session.commit()
    coordinator.connect("leaky-sid")
    assert StoredPlayer.query.count() == 1


def test_previous_writes_were_cleaned_up():
    assert StoredPlayer.query.count() == 0
    assert coordinator.sessions == {}
