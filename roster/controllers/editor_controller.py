# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Player form (create / edit modal) and delete confirmation.
Thin HTTP layer: delegates ALL logic to FormController.
"""

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from starlette.responses import RedirectResponse

from roster.controllers.negotiation import respond, wants_html
from roster.core.dependencies import get_form_controller, get_roster_service
from roster.schemas.roster import (
    DeleteConfirmResponse,
    DeleteRequestResponse,
    FormFieldsUpdate,
    FormResponse,
    SlotRequest,
    SubmitResponse,
)
from roster.services.form_controller import (
    FormController,
    FormStateError,
    FormValidationError,
)
from roster.services.roster_service import RosterService

router = APIRouter(prefix="/api/v1", tags=["Form"])


# ── Open / close ──

@router.get("/form", response_model=FormResponse)
def get_form(form: FormController = Depends(get_form_controller)):
    return form.snapshot()


@router.post("/form/create", response_model=FormResponse)
def open_create_form(
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    """Open an empty form for a new player."""
    form.open_create()
    return respond(request, form.snapshot())


@router.post("/form/edit/{player_id}", response_model=FormResponse)
def open_edit_form(
    player_id: str,
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    """Open the form hydrated from an existing player."""
    try:
        form.open_edit(player_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return respond(request, form.snapshot())


@router.post("/form/cancel", response_model=FormResponse)
def cancel_form(
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    """Discard the working copy; nothing is persisted."""
    form.cancel()
    return respond(request, form.snapshot())


# ── Editing ──

@router.patch("/form", response_model=FormResponse)
def update_form(
    payload: FormFieldsUpdate,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.update_fields(**payload.model_dump(exclude_none=True))
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return form.snapshot()


@router.post("/form/slots", response_model=FormResponse, status_code=201)
def add_slot(
    payload: SlotRequest,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.add_slot(
            day=payload.day or "",
            start_time=payload.start_time or "",
            end_time=payload.end_time or "",
        )
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return form.snapshot()


@router.patch("/form/slots/{index}", response_model=FormResponse)
def update_slot(
    index: int,
    payload: SlotRequest,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.update_slot(index, **payload.model_dump(exclude_none=True))
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return form.snapshot()


@router.delete("/form/slots/{index}", response_model=FormResponse)
def remove_slot(
    index: int,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.remove_slot(index)
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return form.snapshot()


# ── Preference lists ──

@router.get("/form/candidates/{kind}")
def list_candidates(
    kind: str,
    form: FormController = Depends(get_form_controller),
):
    """Players still available for the given list."""
    try:
        players = form.candidates(kind)
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [{"id": p.id, "name": p.full_name} for p in players]


@router.post("/form/preferences/{kind}/{player_id}", response_model=FormResponse)
def add_preference(
    kind: str,
    player_id: str,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.add_preference(kind, player_id)
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return form.snapshot()


@router.delete("/form/preferences/{kind}/{player_id}", response_model=FormResponse)
def remove_preference(
    kind: str,
    player_id: str,
    form: FormController = Depends(get_form_controller),
):
    try:
        form.remove_preference(kind, player_id)
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return form.snapshot()


# ── Page form ──

@router.post("/form", response_class=RedirectResponse)
def post_page_form(
    surname: str = Form(""),
    first_name: str = Form(""),
    phone: str = Form(""),
    level: str = Form(""),
    empathy_rating: int = Form(0),
    slot_day: list[str] = Form([]),
    slot_start: list[str] = Form([]),
    slot_end: list[str] = Form([]),
    preferred_candidate: str = Form(""),
    unwanted_candidate: str = Form(""),
    action: str = Form("save"),
    roster: RosterService = Depends(get_roster_service),
):
    """The modal's HTML form: take every posted field, then run the pressed button.

    Always redirects back to the page, where the toast reports problems.
    """
    form = roster.form
    try:
        form.update_fields(
            surname=surname,
            first_name=first_name,
            phone=phone,
            level=level,
            empathy_rating=empathy_rating,
        )
        form.replace_slots(list(zip(slot_day, slot_start, slot_end)))
        form.run_action(
            action, {"preferred": preferred_candidate, "unwanted": unwanted_candidate}
        )
    except FormValidationError:
        # validate() has already raised the toast
        return RedirectResponse(url="/", status_code=303)
    except FormStateError as e:
        roster.notifier.warning(str(e))
    except KeyError as e:
        roster.notifier.error(e.args[0])
    except ValueError as e:
        roster.notifier.error(str(e))
    return RedirectResponse(url="/", status_code=303)


# ── Submit ──

@router.post("/form/submit", response_model=SubmitResponse)
def submit_form(
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    """Validate and persist. A failed save keeps the form open (502).

    Page submissions always go back to the page, where the notification
    explains what happened.
    """
    try:
        player = form.submit()
    except FormStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except FormValidationError as e:
        if wants_html(request):
            return RedirectResponse(url="/", status_code=303)
        raise HTTPException(status_code=400, detail=str(e))

    if player is None:
        if wants_html(request):
            return RedirectResponse(url="/", status_code=303)
        raise HTTPException(status_code=502, detail="Player could not be saved")
    return respond(request, {"status": "saved", "player": player.to_record()})


# ── Delete confirmation ──

@router.post("/players/{player_id}/delete", response_model=DeleteRequestResponse)
def request_delete(
    player_id: str,
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    """Ask for confirmation before deleting."""
    try:
        player = form.request_delete(player_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return respond(
        request,
        {"status": "pending", "player_id": player_id, "name": player.full_name},
    )


@router.post("/delete/confirm", response_model=DeleteConfirmResponse)
def confirm_delete(
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    pending = form.pending_delete
    deleted = form.confirm_delete()
    if pending is not None and not deleted:
        raise HTTPException(status_code=502, detail="Player could not be deleted")
    return respond(
        request,
        {"status": "deleted" if deleted else "nothing_pending", "deleted": deleted},
    )


@router.post("/delete/cancel", response_model=DeleteConfirmResponse)
def cancel_delete(
    request: Request,
    form: FormController = Depends(get_form_controller),
):
    form.cancel_delete()
    return respond(request, {"status": "cancelled", "deleted": False})
