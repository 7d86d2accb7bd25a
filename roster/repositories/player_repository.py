# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Player record store.
In-memory ordered collection, always sorted by surname. The only owner of
Player instances; callers get copies. NO business rules here: pure CRUD
plus change notification.
"""

import threading
from typing import Callable, Optional

from roster.metrics.prometheus import ROSTER_SIZE
from roster.models.domain import Player

StoreListener = Callable[[list[Player]], None]


def _sort_key(player: Player) -> tuple[str, str]:
    return (player.surname.casefold(), player.first_name.casefold())


class PlayerRepository:
    """In-memory player storage sorted by surname."""

    def __init__(self) -> None:
        self._players: list[Player] = []
        self._listeners: list[StoreListener] = []
        self._lock = threading.RLock()

    # ── Read ──

    def get_all(self) -> list[Player]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._players]

    def get_by_id(self, player_id: str) -> Optional[Player]:
        with self._lock:
            for player in self._players:
                if player.id == player_id:
                    return player.model_copy(deep=True)
        return None

    def exists(self, player_id: str) -> bool:
        return self.get_by_id(player_id) is not None

    def count(self) -> int:
        return len(self._players)

    def names_by_id(self) -> dict[str, str]:
        """id -> 'Surname FirstName' lookup used for preference lists."""
        with self._lock:
            return {p.id: p.full_name for p in self._players if p.id}

    # ── Write ──

    def replace_all(self, players: list[Player]) -> None:
        """Discard the current contents and take the given records."""
        with self._lock:
            self._players = sorted(
                (p.model_copy(deep=True) for p in players), key=_sort_key
            )
            self._changed()

    def upsert(self, player: Player) -> Player:
        with self._lock:
            stored = player.model_copy(deep=True)
            for index, existing in enumerate(self._players):
                if existing.id == stored.id:
                    self._players[index] = stored
                    break
            else:
                self._players.append(stored)
            self._players.sort(key=_sort_key)
            self._changed()
            return stored.model_copy(deep=True)

    def remove(self, player_id: str) -> Optional[Player]:
        with self._lock:
            for index, existing in enumerate(self._players):
                if existing.id == player_id:
                    removed = self._players.pop(index)
                    self._changed()
                    return removed
        return None

    # ── Change notification ──

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        ROSTER_SIZE.set(len(self._players))
        snapshot = [p.model_copy(deep=True) for p in self._players]
        for listener in list(self._listeners):
            listener(snapshot)

    @property
    def lock(self) -> threading.RLock:
        """Held by callers that need a consistent read-modify-write."""
        return self._lock
