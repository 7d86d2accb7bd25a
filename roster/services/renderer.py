# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Renderer: projects the effective player list into display cards
and the full HTML page. Pure: same inputs, same output. Each render replaces
the previous page entirely; edit/delete actions are emitted per card.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from roster.models.domain import EMPATHY_MAX, LEVELS, WEEKDAYS, Player

_env = Environment(
    loader=PackageLoader("roster", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass
class PlayerCard:
    id: str
    full_name: str
    phone: str
    phone_href: str
    level_label: str
    level_class: str
    stars: list[bool] = field(default_factory=list)
    preferred_names: list[str] = field(default_factory=list)
    unwanted_names: list[str] = field(default_factory=list)
    chips: list[str] = field(default_factory=list)
    edit_url: str = ""
    delete_url: str = ""


def _phone_href(phone: str) -> str:
    return "tel:" + "".join(ch for ch in phone if ch.isdigit() or ch == "+")


def _resolve(ids: list[str], names_by_id: dict[str, str]) -> list[str]:
    return [names_by_id[pid] for pid in ids if pid in names_by_id]


def build_card(
    player: Player, variant: str, names_by_id: Optional[dict[str, str]] = None
) -> PlayerCard:
    lookup = names_by_id or {}
    label, css = LEVELS.get(player.level, (player.level, ""))
    card = PlayerCard(
        id=player.id or "",
        full_name=player.full_name,
        phone=player.phone,
        phone_href=_phone_href(player.phone),
        level_label=label,
        level_class=css,
        chips=[slot.chip for slot in player.availability],
        edit_url=f"/api/v1/form/edit/{player.id}",
        delete_url=f"/api/v1/players/{player.id}/delete",
    )
    if variant == "preferences":
        card.preferred_names = _resolve(player.preferred_player_ids, lookup)
        card.unwanted_names = _resolve(player.unwanted_player_ids, lookup)
    else:
        rating = player.empathy_rating or 0
        card.stars = [i <= rating for i in range(1, EMPATHY_MAX + 1)]
    return card


def build_cards(
    players: list[Player], variant: str, names_by_id: Optional[dict[str, str]] = None
) -> list[PlayerCard]:
    return [build_card(p, variant, names_by_id) for p in players]


def render_page(context: dict[str, Any]) -> str:
    """Full page: sidebar filters, cards, modals and the notification."""
    return _env.get_template("index.html").render(
        levels=LEVELS, weekdays=WEEKDAYS, empathy_max=EMPATHY_MAX, **context
    )
