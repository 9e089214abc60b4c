"""Player persistence gateway.

The rest of the server sees persistence only as::

    store.get(username) -> dict | None
    store.put(record_dict) -> True

Records are opaque JSON documents keyed by ``record["username"]``. The
SQLAlchemy-backed store wraps driver failures in ``PersistenceError`` after
rolling back the session so the next request starts clean.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from lounge.logging_utils import get_logger
from lounge.models.models import StoredPlayer
from lounge.services.errors import PersistenceError

_log = get_logger("persistence")


class SqlPlayerStore:
    def __init__(self, db):
        self.db = db

    def get(self, username: str) -> Optional[Dict[str, Any]]:
        try:
            row = self.db.session.get(StoredPlayer, username)
            return row.record() if row else None
        except (SQLAlchemyError, ValueError) as exc:
            self.db.session.rollback()
            _log.error(event="player_load_failed", username=username, error=repr(exc))
            raise PersistenceError() from exc

    def put(self, record: Dict[str, Any]) -> bool:
        username = record["username"]
        try:
            row = self.db.session.get(StoredPlayer, username)
            payload = json.dumps(record)
            if row is None:
                row = StoredPlayer(username=username, data=payload)
                self.db.session.add(row)
            else:
                row.data = payload
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            _log.error(event="player_save_failed", username=username, error=repr(exc))
            raise PersistenceError() from exc
        return True

    def delete(self, username: str) -> bool:
        try:
            row = self.db.session.get(StoredPlayer, username)
            if row is None:
                return False
            self.db.session.delete(row)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            _log.error(event="player_delete_failed", username=username, error=repr(exc))
            raise PersistenceError() from exc
        return True

    def usernames(self) -> List[str]:
        rows = StoredPlayer.query.order_by(StoredPlayer.username.asc()).all()
        return [r.username for r in rows]
