"""
project: Camel Lounge
module: models.py
License: MIT

Database models used by the Camel Lounge server.

Notes:
- Player progression is stored as a single JSON document per username; the
  game treats it as an opaque blob and no schema migration is attempted.
- Lobbies, battles and the wild spawn pool are in-memory only.
"""

import json
from datetime import datetime

from lounge import db


class StoredPlayer(db.Model):
    """Durable player record.

    Attributes:
        username: Primary key; the name a player joins with.
        data: JSON serialized ``PlayerRecord.to_dict()`` payload.
        updated_at: Last write time (UTC).
    """

    __tablename__ = "players"

    username = db.Column(db.String(80), primary_key=True)
    data = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def record(self):
        return json.loads(self.data)
