# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
Range checks on the rating are left to the form controller so rejections
go through the notification channel.
"""

from typing import Optional

from pydantic import BaseModel, Field

from roster.models.domain import DAY_PATTERN, LEVEL_PATTERN, TIME_PATTERN


# ── Form Schemas ──

class FormFieldsUpdate(BaseModel):
    """Partial update of the open form's working copy."""
    surname: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    level: Optional[str] = Field(default=None, pattern=LEVEL_PATTERN)
    empathy_rating: Optional[int] = Field(default=None, description="Stars, 1-5")


class SlotRequest(BaseModel):
    """Availability slot draft; any sub-field may still be empty."""
    day: Optional[str] = Field(default=None, pattern="^$|" + DAY_PATTERN)
    start_time: Optional[str] = Field(default=None, pattern="^$|" + TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern="^$|" + TIME_PATTERN)


class FormResponse(BaseModel):
    state: str
    editing_id: Optional[str] = None
    variant: str
    draft: dict
    pending_delete: Optional[str] = None
    days: list[str]
    levels: list[str]


class SubmitResponse(BaseModel):
    status: str
    player: Optional[dict] = None


# ── Delete Schemas ──

class DeleteRequestResponse(BaseModel):
    status: str
    player_id: str
    name: str


class DeleteConfirmResponse(BaseModel):
    status: str
    deleted: bool


# ── Listing Schemas ──

class PlayerListResponse(BaseModel):
    total: int
    mode: str
    players: list[dict]


class NotificationResponse(BaseModel):
    kind: Optional[str] = None
    message: Optional[str] = None
    created_at: Optional[str] = None
