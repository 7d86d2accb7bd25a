# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.

Field aliases follow the stored document layout (camelCase), Python
attributes are snake_case. Records read back from either backend are parsed
leniently: the store is schemaless, so unknown keys are kept and missing
lists default to empty.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# value -> (label, short)
WEEKDAYS: dict[str, tuple[str, str]] = {
    "monday": ("Monday", "Mon"),
    "tuesday": ("Tuesday", "Tue"),
    "wednesday": ("Wednesday", "Wed"),
    "thursday": ("Thursday", "Thu"),
    "friday": ("Friday", "Fri"),
    "saturday": ("Saturday", "Sat"),
    "sunday": ("Sunday", "Sun"),
}

# value -> (label, css class)
LEVELS: dict[str, tuple[str, str]] = {
    "beginner": ("Beginner", "level-beginner"),
    "intermediate": ("Intermediate", "level-intermediate"),
    "advanced": ("Advanced", "level-advanced"),
    "competitive": ("Competitive", "level-competitive"),
}

EMPATHY_MIN = 1
EMPATHY_MAX = 5

DAY_PATTERN = "^(" + "|".join(WEEKDAYS) + ")$"
LEVEL_PATTERN = "^(" + "|".join(LEVELS) + ")$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def day_short(day: str) -> str:
    """3-letter abbreviation, falling back to the raw value."""
    entry = WEEKDAYS.get(day)
    return entry[1] if entry else day


class AvailabilitySlot(BaseModel):
    """One weekly availability window, times as HH:MM strings."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    day: str = Field(..., description="Weekday value, e.g. 'tuesday'")
    start_time: str = Field(..., alias="startTime")
    end_time: str = Field(..., alias="endTime")

    @property
    def chip(self) -> str:
        return f"{day_short(self.day)} {self.start_time}-{self.end_time}"


class Player(BaseModel):
    """A roster entry as held by the record store."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    surname: str = ""
    first_name: str = Field("", alias="firstName")
    phone: str = ""
    level: str = ""
    empathy_rating: Optional[int] = Field(None, alias="empathyRating")
    availability: list[AvailabilitySlot] = Field(default_factory=list)
    preferred_player_ids: list[str] = Field(default_factory=list, alias="preferredPlayerIds")
    unwanted_player_ids: list[str] = Field(default_factory=list, alias="unwantedPlayerIds")
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    @property
    def full_name(self) -> str:
        return f"{self.surname} {self.first_name}".strip()

    def to_document(self) -> dict:
        """Stored representation: camelCase keys, no id, no empty optionals."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)

    def to_record(self) -> dict:
        """Full representation including the id (local blob, API responses)."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _stored_keys(field: str) -> set[str]:
    for name, info in Player.model_fields.items():
        if field in (name, info.alias):
            return {name, info.alias or name}
    return {field}


def parse_stored_player(data: dict) -> tuple[Player, list[str]]:
    """Parse a stored record, discarding only the parts that do not validate.

    A broken availability slot is removed on its own; any other invalid
    field falls back to its default. Everything else, unknown keys included,
    is kept so the next rewrite of the collection does not lose the record.
    Returns the player and the locations that were discarded.
    """
    record = dict(data)
    dropped: list[str] = []
    while True:
        try:
            return Player.model_validate(record), dropped
        except ValidationError as exc:
            loc = exc.errors()[0]["loc"]
            field = str(loc[0]) if loc else ""
            slots = record.get("availability")
            if field == "availability" and len(loc) > 1 and isinstance(loc[1], int) \
                    and isinstance(slots, list) and loc[1] < len(slots):
                record["availability"] = slots[:loc[1]] + slots[loc[1] + 1:]
                dropped.append(f"availability[{loc[1]}]")
                continue
            keys = _stored_keys(field) & set(record)
            if not keys:
                raise
            for key in keys:
                record.pop(key)
            dropped.append(field)
