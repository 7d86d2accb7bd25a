# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Filter engine: pure, stateless roster filtering.
Every active predicate is ANDed; output keeps the input order. There is no
index: each criteria or roster change triggers a full rescan.
"""

import re
from typing import Callable, Optional

from pydantic import BaseModel, Field, field_validator

from roster.metrics.prometheus import FILTER_RUNS
from roster.models.domain import TIME_PATTERN, Player

Predicate = Callable[[Player], bool]


class FilterCriteria(BaseModel):
    """Current filter inputs; the defaults disable every predicate."""

    search: str = ""
    levels: list[str] = Field(default_factory=list)
    days: list[str] = Field(default_factory=list)
    min_empathy: int = Field(0, ge=0, le=5)
    preference_search: str = ""
    time_start: Optional[str] = None
    time_end: Optional[str] = None

    @field_validator("time_start", "time_end", mode="before")
    @classmethod
    def blank_time_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        value = str(v).strip()
        if not re.match(TIME_PATTERN, value):
            raise ValueError("time must be HH:MM")
        return value

    def is_default(self) -> bool:
        return not (
            self.search.strip()
            or self.levels
            or self.days
            or self.min_empathy > 0
            or self.preference_search.strip()
            or self.time_start
            or self.time_end
        )


# ── Individual predicates ──

def matches_search(player: Player, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    return needle in f"{player.surname} {player.first_name}".lower()


def matches_levels(player: Player, levels: list[str]) -> bool:
    return not levels or player.level in levels


def matches_empathy(player: Player, floor: int) -> bool:
    if floor <= 0:
        return True
    return (player.empathy_rating or 0) >= floor


def matches_days(player: Player, days: list[str]) -> bool:
    """At least one slot on a selected day; no slots means no match."""
    if not days:
        return True
    return any(slot.day in days for slot in player.availability)


def matches_preferences(player: Player, term: str, names_by_id: dict[str, str]) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    linked = player.preferred_player_ids + player.unwanted_player_ids
    names = (names_by_id.get(pid) for pid in linked)
    return any(name and needle in name.lower() for name in names)


def matches_time_window(
    player: Player, time_start: Optional[str], time_end: Optional[str]
) -> bool:
    """Some slot must contain [time_start, time_end]; an unset side is open.

    Players without any slot are unconstrained and always pass.
    """
    if not (time_start or time_end):
        return True
    if not player.availability:
        return True
    for slot in player.availability:
        if time_start and slot.start_time > time_start:
            continue
        if time_end and slot.end_time < time_end:
            continue
        return True
    return False


def build_predicates(
    criteria: FilterCriteria, names_by_id: Optional[dict[str, str]] = None
) -> list[Predicate]:
    """Only the active predicates, each applicable on its own."""
    lookup = names_by_id or {}
    predicates: list[Predicate] = []
    if criteria.search.strip():
        predicates.append(lambda p: matches_search(p, criteria.search))
    if criteria.levels:
        predicates.append(lambda p: matches_levels(p, criteria.levels))
    if criteria.min_empathy > 0:
        predicates.append(lambda p: matches_empathy(p, criteria.min_empathy))
    if criteria.days:
        predicates.append(lambda p: matches_days(p, criteria.days))
    if criteria.preference_search.strip():
        predicates.append(
            lambda p: matches_preferences(p, criteria.preference_search, lookup)
        )
    if criteria.time_start or criteria.time_end:
        predicates.append(
            lambda p: matches_time_window(p, criteria.time_start, criteria.time_end)
        )
    return predicates


def apply_filters(
    players: list[Player],
    criteria: FilterCriteria,
    names_by_id: Optional[dict[str, str]] = None,
) -> list[Player]:
    """Return the players passing every active predicate, in input order."""
    FILTER_RUNS.inc()
    predicates = build_predicates(criteria, names_by_id)
    return [p for p in players if all(check(p) for check in predicates)]
