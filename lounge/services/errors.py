"""Game error taxonomy.

Services raise these; the session coordinator translates them into an
``error`` event for the initiating connection. None of them is fatal to the
process. Each carries a stable machine ``code`` that clients switch on.
"""

from __future__ import annotations


class GameError(Exception):
    code = "game_error"

    def __init__(self, message: str | None = None, code: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class AuthorizationError(GameError):
    """Only the lobby host may do that."""

    code = "forbidden"


class NotFoundError(GameError):
    """Unknown identifier."""

    code = "not_found"


class CapacityError(GameError):
    """Capacity exceeded."""

    code = "capacity"


class StateConflictError(GameError):
    """Operation not allowed in the current state."""

    code = "conflict"


class PersistenceError(GameError):
    """Player storage is unavailable."""

    code = "persistence_failed"


# --- Concrete lobby / world errors -------------------------------------------


class NotLobbyHost(AuthorizationError):
    """Only the lobby host may do that."""

    code = "not_host"


class LobbyNotFound(NotFoundError):
    """Lobby does not exist."""

    code = "lobby_not_found"


class NotInLobby(NotFoundError):
    """Connection is not in a lobby."""

    code = "not_in_lobby"


class WildNotFound(NotFoundError):
    """Wild cigarette is no longer in the world."""

    code = "wild_not_found"


class LobbyFull(CapacityError):
    """Lobby is full."""

    code = "lobby_full"


class LobbyAlreadyStarted(StateConflictError):
    """Lobby has already started."""

    code = "lobby_started"


class NotJoined(StateConflictError):
    """Join the world with player:join first."""

    code = "not_joined"


class NoActiveCigarette(StateConflictError):
    """Player has no active cigarette."""

    code = "no_active_cigarette"
