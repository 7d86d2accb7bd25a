# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Player listing, filter state and notification endpoints.
Thin HTTP layer: delegates ALL logic to RosterService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError

from roster.controllers.negotiation import respond
from roster.core.dependencies import get_roster_service
from roster.schemas.roster import NotificationResponse, PlayerListResponse
from roster.services.filter_engine import FilterCriteria
from roster.services.roster_service import RosterService

router = APIRouter(prefix="/api/v1", tags=["Players"])


def criteria_from_query(
    search: str = Query("", description="Substring of 'Surname FirstName'"),
    levels: list[str] = Query([], description="Accepted levels"),
    days: list[str] = Query([], description="Weekdays with at least one slot"),
    min_empathy: int = Query(0, ge=0, le=5, description="Empathy floor, 0 = off"),
    preference_search: str = Query("", description="Preferred/unwanted partner name"),
    time_start: Optional[str] = Query(None, description="HH:MM window start"),
    time_end: Optional[str] = Query(None, description="HH:MM window end"),
) -> FilterCriteria:
    try:
        return FilterCriteria(
            search=search,
            levels=levels,
            days=days,
            min_empathy=min_empathy,
            preference_search=preference_search,
            time_start=time_start,
            time_end=time_end,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def _listing(roster: RosterService, players) -> dict:
    return {
        "total": len(players),
        "mode": roster.backend.mode,
        "players": [p.to_record() for p in players],
    }


# ── Players ──

@router.get("/players", response_model=PlayerListResponse)
def list_players(
    criteria: FilterCriteria = Depends(criteria_from_query),
    roster: RosterService = Depends(get_roster_service),
):
    """Filter the roster without touching the session's filter state."""
    return _listing(roster, roster.query(criteria))


@router.get("/players/{player_id}")
def get_player(
    player_id: str,
    roster: RosterService = Depends(get_roster_service),
):
    try:
        return roster.get_player(player_id).to_record()
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Session filters ──

@router.get("/filters", response_model=FilterCriteria)
def get_filters(roster: RosterService = Depends(get_roster_service)):
    return roster.criteria


@router.put("/filters", response_model=PlayerListResponse)
def set_filters(
    criteria: FilterCriteria,
    roster: RosterService = Depends(get_roster_service),
):
    """Replace the active criteria; returns the effective list."""
    return _listing(roster, roster.set_filters(criteria))


@router.post("/filters/reset", response_model=PlayerListResponse)
def reset_filters(
    request: Request,
    roster: RosterService = Depends(get_roster_service),
):
    return respond(request, _listing(roster, roster.reset_filters()))


@router.post("/filters/empathy/{value}", response_model=FilterCriteria)
def toggle_empathy_filter(
    value: int,
    request: Request,
    roster: RosterService = Depends(get_roster_service),
):
    """Select an empathy floor; selecting the active one clears it."""
    if value < 1 or value > 5:
        raise HTTPException(status_code=400, detail="Empathy floor must be 1-5")
    return respond(request, roster.toggle_min_empathy(value))


@router.post("/view/{mode}")
def set_view(
    mode: str,
    request: Request,
    roster: RosterService = Depends(get_roster_service),
):
    try:
        roster.set_view_mode(mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return respond(request, {"view": roster.view_mode})


# ── Notification channel ──

@router.get("/notification", response_model=NotificationResponse)
def current_notification(roster: RosterService = Depends(get_roster_service)):
    notification = roster.notifier.current()
    return notification.to_dict() if notification else {}
