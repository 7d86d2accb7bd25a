# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Persistence backend contract shared by the realtime and local
implementations. Selected once at startup, never swapped at runtime.

Every write resolves to a boolean; failures are logged and reported through
the notifier, never raised to the caller.
"""

from roster.models.domain import Player
from roster.repositories.player_repository import PlayerRepository
from roster.services.notifier import Notifier


class PersistenceBackend:
    """Base class for the realtime and local persistence modes."""

    mode: str = "unknown"

    def __init__(self, store: PlayerRepository, notifier: Notifier) -> None:
        self._store = store
        self._notifier = notifier

    @property
    def store(self) -> PlayerRepository:
        return self._store

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    def start(self) -> None:
        """Populate the record store; called once from the app lifespan."""
        raise NotImplementedError

    def save(self, player: Player) -> bool:
        """Create (no id) or shallow-merge update (id present)."""
        raise NotImplementedError

    def delete(self, player_id: str) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        """Release connections and background workers."""

    def describe(self) -> dict:
        return {"mode": self.mode}
