# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Player form controller: create/edit modal and delete confirmation.

States: closed, creating, editing(id). While open, the controller owns a
working copy of the record plus scratch lists (availability slot drafts,
preferred / unwanted ids). Nothing reaches the record store until submit
hands a complete record to the persistence backend; cancel discards it all.
"""

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.metrics.prometheus import FORM_REJECTIONS
from roster.models.domain import EMPATHY_MAX, EMPATHY_MIN, LEVELS, WEEKDAYS, Player
from roster.repositories.backend import PersistenceBackend
from roster.repositories.player_repository import PlayerRepository
from roster.services.notifier import Notifier

logger = get_logger(__name__)

CLOSED = "closed"
CREATING = "creating"
EDITING = "editing"

PREFERENCE_KINDS: tuple[str, ...] = ("preferred", "unwanted")


class FormValidationError(ValueError):
    """Submitted data is missing or out of range; the form is untouched."""


class FormStateError(RuntimeError):
    """Operation not allowed in the current form state."""


@dataclass
class SlotDraft:
    day: str = ""
    start_time: str = ""
    end_time: str = ""

    def is_complete(self) -> bool:
        return bool(self.day and self.start_time and self.end_time)


@dataclass
class FormDraft:
    surname: str = ""
    first_name: str = ""
    phone: str = ""
    level: str = ""
    empathy_rating: int = 0
    slots: list[SlotDraft] = field(default_factory=list)
    preferred_ids: list[str] = field(default_factory=list)
    unwanted_ids: list[str] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unique(ids: list[str], exclude: Optional[str] = None) -> list[str]:
    seen: list[str] = []
    for pid in ids:
        if pid and pid != exclude and pid not in seen:
            seen.append(pid)
    return seen


class FormController:
    """Transient create/edit state and the submit pipeline."""

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
        self._state = CLOSED
        self._editing_id: Optional[str] = None
        self._draft = FormDraft()
        self._pending_delete: Optional[str] = None
        self._submit_lock = threading.Lock()

    # ── State ──

    @property
    def state(self) -> str:
        return self._state

    @property
    def editing_id(self) -> Optional[str]:
        return self._editing_id

    @property
    def draft(self) -> FormDraft:
        return self._draft

    @property
    def is_open(self) -> bool:
        return self._state != CLOSED

    @property
    def uses_preferences(self) -> bool:
        return self._variant == "preferences"

    def _reset(self, state: str, editing_id: Optional[str] = None) -> None:
        self._state = state
        self._editing_id = editing_id
        self._draft = FormDraft()

    def _require_open(self) -> None:
        if self._state == CLOSED:
            raise FormStateError("No player form is open")

    # ── Open / close ──

    def open_create(self) -> FormDraft:
        self._reset(CREATING)
        return self._draft

    def open_edit(self, player_id: str) -> FormDraft:
        """Hydrate every field from the stored record. Raises KeyError."""
        player = self._store.get_by_id(player_id)
        if player is None:
            raise KeyError(f"Player '{player_id}' not found")

        self._reset(EDITING, editing_id=player_id)
        self._draft = FormDraft(
            surname=player.surname,
            first_name=player.first_name,
            phone=player.phone,
            level=player.level,
            empathy_rating=player.empathy_rating or 0,
            slots=[
                SlotDraft(day=s.day, start_time=s.start_time, end_time=s.end_time)
                for s in player.availability
            ],
            preferred_ids=list(player.preferred_player_ids),
            unwanted_ids=list(player.unwanted_player_ids),
        )
        return self._draft

    def cancel(self) -> None:
        """Close button, Escape and overlay click all land here."""
        if self._state != CLOSED:
            logger.info("Player form discarded (state=%s)", self._state)
        self._reset(CLOSED)

    # ── Field editing ──

    def update_fields(
        self,
        surname: Optional[str] = None,
        first_name: Optional[str] = None,
        phone: Optional[str] = None,
        level: Optional[str] = None,
        empathy_rating: Optional[int] = None,
    ) -> FormDraft:
        self._require_open()
        if surname is not None:
            self._draft.surname = surname
        if first_name is not None:
            self._draft.first_name = first_name
        if phone is not None:
            self._draft.phone = phone
        if level is not None:
            self._draft.level = level
        if empathy_rating is not None:
            self._draft.empathy_rating = empathy_rating
        return self._draft

    def add_slot(self, day: str = "", start_time: str = "", end_time: str = "") -> int:
        self._require_open()
        self._draft.slots.append(SlotDraft(day=day, start_time=start_time, end_time=end_time))
        return len(self._draft.slots) - 1

    def update_slot(
        self,
        index: int,
        day: Optional[str] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> SlotDraft:
        self._require_open()
        slot = self._slot_at(index)
        if day is not None:
            slot.day = day
        if start_time is not None:
            slot.start_time = start_time
        if end_time is not None:
            slot.end_time = end_time
        return slot

    def remove_slot(self, index: int) -> None:
        self._require_open()
        self._slot_at(index)
        del self._draft.slots[index]

    def replace_slots(self, slots: list[tuple[str, str, str]]) -> list[SlotDraft]:
        """Swap in the rows posted by the page form, in order."""
        self._require_open()
        self._draft.slots = [
            SlotDraft(day=day, start_time=start, end_time=end) for day, start, end in slots
        ]
        return self._draft.slots

    def _slot_at(self, index: int) -> SlotDraft:
        if index < 0 or index >= len(self._draft.slots):
            raise KeyError(f"No availability slot at position {index}")
        return self._draft.slots[index]

    # ── Preference lists ──

    def _lists(self, kind: str) -> tuple[list[str], list[str]]:
        if not self.uses_preferences:
            raise FormStateError("Preference lists are not enabled for this roster")
        if kind == "preferred":
            return self._draft.preferred_ids, self._draft.unwanted_ids
        if kind == "unwanted":
            return self._draft.unwanted_ids, self._draft.preferred_ids
        raise ValueError(f"Unknown preference list '{kind}'")

    def candidates(self, kind: str) -> list[Player]:
        """Players that may still be added to the given list."""
        self._require_open()
        own, other = self._lists(kind)
        taken = set(own) | set(other)
        return [
            p for p in self._store.get_all()
            if p.id != self._editing_id and p.id not in taken
        ]

    def add_preference(self, kind: str, player_id: str) -> list[str]:
        self._require_open()
        own, other = self._lists(kind)
        if player_id == self._editing_id:
            raise ValueError("A player cannot reference itself")
        if not self._store.exists(player_id):
            raise KeyError(f"Player '{player_id}' not found")
        if player_id in other:
            opposite = "unwanted" if kind == "preferred" else "preferred"
            raise ValueError(f"Player is already in the {opposite} list")
        if player_id not in own:
            own.append(player_id)
        return list(own)

    def remove_preference(self, kind: str, player_id: str) -> list[str]:
        self._require_open()
        own, _ = self._lists(kind)
        if player_id in own:
            own.remove(player_id)
        return list(own)

    # ── Submit ──

    def validate(self) -> None:
        """Raise FormValidationError (and notify) on the first problem."""
        draft = self._draft
        message = None
        if not draft.surname.strip():
            message = "Surname is required"
        elif not draft.first_name.strip():
            message = "First name is required"
        elif not draft.phone.strip():
            message = "Phone is required"
        elif draft.level not in LEVELS:
            message = "Select a level"
        elif not self.uses_preferences and not (
            EMPATHY_MIN <= (draft.empathy_rating or 0) <= EMPATHY_MAX
        ):
            message = f"Select the empathy rating ({EMPATHY_MIN}-{EMPATHY_MAX} stars)"

        if message is not None:
            FORM_REJECTIONS.inc()
            self._notifier.error(message)
            raise FormValidationError(message)

    def build_player(self) -> Player:
        """Record handed to the backend; incomplete slots are dropped."""
        draft = self._draft
        now = _now()
        data: dict[str, Any] = {
            "surname": draft.surname.strip(),
            "first_name": draft.first_name.strip(),
            "phone": draft.phone.strip(),
            "level": draft.level,
            "availability": [
                {"day": s.day, "start_time": s.start_time, "end_time": s.end_time}
                for s in draft.slots
                if s.is_complete()
            ],
            "updated_at": now,
        }
        if self.uses_preferences:
            data["preferred_player_ids"] = _unique(draft.preferred_ids, self._editing_id)
            data["unwanted_player_ids"] = _unique(draft.unwanted_ids, self._editing_id)
        else:
            data["empathy_rating"] = draft.empathy_rating
        if self._state == EDITING:
            data["id"] = self._editing_id
        else:
            data["created_at"] = now
        return Player.model_validate(data)

    def submit(self) -> Optional[Player]:
        """Validate and persist; None when the backend failed or a save is in flight."""
        if not self._submit_lock.acquire(blocking=False):
            self._notifier.warning("Save already in progress")
            return None
        try:
            # checked under the lock: an earlier submit may have just closed the form
            self._require_open()
            self.validate()
            editing = self._state == EDITING
            player = self.build_player()
            before = self._notifier.current()
            if not self._backend.save(player):
                logger.warning("Save failed, form kept open (state=%s)", self._state)
                return None
            if not self._raised_error_since(before):
                self._notifier.success(
                    "Player updated successfully" if editing else "Player added successfully"
                )
            self._reset(CLOSED)
            return player
        finally:
            self._submit_lock.release()

    def _raised_error_since(self, before: Any) -> bool:
        """True when the backend reported an error while completing a write."""
        current = self._notifier.current()
        if current is None or current is before or current.kind != "error":
            return False
        logger.warning("Write succeeded but kept the error notification: %s", current.message)
        return True

    # ── Page actions ──

    def run_action(
        self, action: str, candidates: Optional[dict[str, str]] = None
    ) -> Optional[Player]:
        """Dispatch the button pressed on the page form.

        Actions: save, add_slot, remove_slot:<index>, add_<kind> (takes the
        id selected for that list from `candidates`), remove_<kind>:<id>.
        Returns the saved player for save, otherwise None.
        """
        name, _, arg = action.partition(":")
        if name == "save":
            return self.submit()
        if name == "add_slot":
            self.add_slot()
        elif name == "remove_slot":
            try:
                index = int(arg)
            except ValueError:
                raise KeyError(f"No availability slot at position {arg!r}") from None
            self.remove_slot(index)
        elif name.startswith("add_") and name[4:] in PREFERENCE_KINDS:
            selected = (candidates or {}).get(name[4:], "")
            if selected:
                self.add_preference(name[4:], selected)
        elif name.startswith("remove_") and name[7:] in PREFERENCE_KINDS:
            self.remove_preference(name[7:], arg)
        else:
            raise ValueError(f"Unknown form action '{action}'")
        return None

    # ── Delete confirmation ──

    @property
    def pending_delete(self) -> Optional[str]:
        return self._pending_delete

    def request_delete(self, player_id: str) -> Player:
        player = self._store.get_by_id(player_id)
        if player is None:
            raise KeyError(f"Player '{player_id}' not found")
        self._pending_delete = player_id
        return player

    def confirm_delete(self) -> bool:
        """Delete the pending player; the dialog closes either way."""
        if self._pending_delete is None:
            return False
        player_id = self._pending_delete
        self._pending_delete = None
        before = self._notifier.current()
        ok = self._backend.delete(player_id)
        if ok and not self._raised_error_since(before):
            self._notifier.success("Player deleted")
        return ok

    def cancel_delete(self) -> None:
        self._pending_delete = None

    # ── View ──

    def snapshot(self) -> dict[str, Any]:
        names = self._store.names_by_id()
        draft = asdict(self._draft)
        draft["preferred"] = [
            {"id": pid, "name": names.get(pid, pid)} for pid in self._draft.preferred_ids
        ]
        draft["unwanted"] = [
            {"id": pid, "name": names.get(pid, pid)} for pid in self._draft.unwanted_ids
        ]
        return {
            "state": self._state,
            "editing_id": self._editing_id,
            "variant": self._variant,
            "draft": draft,
            "pending_delete": self._pending_delete,
            "days": list(WEEKDAYS),
            "levels": list(LEVELS),
        }
