# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Roster application state.
Owns the record store, the active backend, the filter criteria with their
result, the form controller and the notifier. Every store change re-runs
the filter engine over the whole roster.
"""

from typing import Any, Optional

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.models.domain import Player
from roster.repositories.backend import PersistenceBackend
from roster.repositories.player_repository import PlayerRepository
from roster.services.filter_engine import FilterCriteria, apply_filters
from roster.services.form_controller import PREFERENCE_KINDS, FormController
from roster.services.notifier import Notifier
from roster.services.renderer import build_cards, render_page

logger = get_logger(__name__)

VIEW_MODES: tuple[str, ...] = ("grid", "list")


class RosterService:
    """Single-session roster state composed from its collaborators."""

    def __init__(
        self,
        store: PlayerRepository,
        backend: PersistenceBackend,
        notifier: Notifier,
        variant: Optional[str] = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._notifier = notifier
        self._variant = (variant or settings.ROSTER_VARIANT).lower()
        self._criteria = FilterCriteria()
        self._filtered: list[Player] = []
        self._view_mode = "grid"
        # shared with the store: listeners already run under it
        self._lock = store.lock
        self.form = FormController(store, backend, notifier, variant=self._variant)
        store.add_listener(self._on_store_changed)

    # ── Collaborators ──

    @property
    def store(self) -> PlayerRepository:
        return self._store

    @property
    def backend(self) -> PersistenceBackend:
        return self._backend

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def variant(self) -> str:
        return self._variant

    def start(self) -> None:
        """Let the backend populate the store (snapshot or blob load)."""
        self._backend.start()
        logger.info(
            "Roster ready: mode=%s, variant=%s, players=%d",
            self._backend.mode, self._variant, self._store.count(),
        )

    # ── Filtering ──

    def _on_store_changed(self, players: list[Player]) -> None:
        with self._lock:
            self._filtered = apply_filters(players, self._criteria, self._store.names_by_id())

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria.model_copy(deep=True)

    def set_filters(self, criteria: FilterCriteria) -> list[Player]:
        with self._lock:
            self._criteria = criteria.model_copy(deep=True)
            self._filtered = apply_filters(
                self._store.get_all(), self._criteria, self._store.names_by_id()
            )
            return self.effective_players()

    def reset_filters(self) -> list[Player]:
        return self.set_filters(FilterCriteria())

    def toggle_min_empathy(self, value: int) -> FilterCriteria:
        """Picking the active floor again switches the filter off."""
        criteria = self.criteria
        criteria.min_empathy = 0 if criteria.min_empathy == value else value
        self.set_filters(criteria)
        return criteria

    def effective_players(self) -> list[Player]:
        """Filtered list while any filter is active, otherwise the full roster."""
        with self._lock:
            if self._criteria.is_default():
                return self._store.get_all()
            return [p.model_copy(deep=True) for p in self._filtered]

    def query(self, criteria: FilterCriteria) -> list[Player]:
        """One-off filtering that leaves the session criteria alone."""
        return apply_filters(self._store.get_all(), criteria, self._store.names_by_id())

    # ── Lookups ──

    def get_player(self, player_id: str) -> Player:
        player = self._store.get_by_id(player_id)
        if player is None:
            raise KeyError(f"Player '{player_id}' not found")
        return player

    # ── View ──

    @property
    def view_mode(self) -> str:
        return self._view_mode

    def set_view_mode(self, mode: str) -> None:
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode '{mode}'")
        self._view_mode = mode

    def page_context(self) -> dict[str, Any]:
        players = self.effective_players()
        names = self._store.names_by_id()
        notification = self._notifier.current()
        pending = self.form.pending_delete
        candidates: dict[str, list[dict[str, str]]] = {}
        if self.form.is_open and self.form.uses_preferences:
            for kind in PREFERENCE_KINDS:
                candidates[kind] = [
                    {"id": p.id, "name": p.full_name} for p in self.form.candidates(kind)
                ]
        return {
            "cards": build_cards(players, self._variant, names),
            "count": len(players),
            "criteria": self._criteria,
            "variant": self._variant,
            "view_mode": self._view_mode,
            "mode": self._backend.mode,
            "notification": notification,
            "form": self.form.snapshot(),
            "candidates": candidates,
            "pending_delete_name": names.get(pending) if pending else None,
        }

    def render(self) -> str:
        return render_page(self.page_context())
