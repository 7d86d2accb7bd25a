# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Roster page.
Query parameters, when present, become the session's filter criteria;
`view` switches between grid and list layout.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import HTMLResponse

from roster.controllers.player_controller import criteria_from_query
from roster.core.dependencies import get_roster_service
from roster.services.filter_engine import FilterCriteria
from roster.services.roster_service import RosterService

router = APIRouter(tags=["UI"])

FILTER_PARAMS: set[str] = {
    "search", "levels", "days", "min_empathy", "preference_search",
    "time_start", "time_end",
}


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    view: Optional[str] = Query(None, description="grid or list"),
    criteria: FilterCriteria = Depends(criteria_from_query),
    roster: RosterService = Depends(get_roster_service),
):
    if view is not None:
        try:
            roster.set_view_mode(view)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if FILTER_PARAMS & set(request.query_params.keys()):
        roster.set_filters(criteria)
    return HTMLResponse(content=roster.render())
