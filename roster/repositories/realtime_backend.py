# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Realtime document store backend (Firebase Realtime Database REST).

The collection lives under `{REALTIME_DB_URL}/{collection}.json`; every child
is keyed by the store-generated id and holds the record minus its id.
Snapshots always carry the entire collection and unconditionally replace the
record store. Writes never touch the store directly: a successful write is
followed by a fresh snapshot (round trip).
"""

import threading
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.metrics.prometheus import PLAYERS_DELETED, PLAYERS_SAVED, SNAPSHOTS_RECEIVED
from roster.models.domain import Player, parse_stored_player
from roster.repositories.backend import PersistenceBackend
from roster.repositories.player_repository import PlayerRepository
from roster.services.notifier import Notifier

logger = get_logger(__name__)

SnapshotCallback = Callable[[list[Player]], None]

STREAM_DATA_EVENTS: tuple[str, ...] = ("put", "patch")
STREAM_CLOSE_EVENTS: tuple[str, ...] = ("cancel", "auth_revoked")


def parse_snapshot(data: Any) -> list[Player]:
    """Turn a collection payload into players, injecting ids from the keys."""
    if not data:
        return []
    if isinstance(data, list):
        # integer-like keys come back as a sparse JSON array
        items = [(str(i), v) for i, v in enumerate(data) if v is not None]
    elif isinstance(data, dict):
        items = list(data.items())
    else:
        logger.warning("Ignoring malformed snapshot of type %s", type(data).__name__)
        return []

    players: list[Player] = []
    for key, value in items:
        if not isinstance(value, dict):
            logger.warning("Skipping non-object child '%s' in snapshot", key)
            continue
        try:
            player, dropped = parse_stored_player({**value, "id": key})
        except ValidationError as exc:
            logger.warning("Skipping unreadable player '%s': %s", key, exc)
            continue
        if dropped:
            logger.warning("Player '%s': discarded unreadable %s", key, ", ".join(dropped))
        players.append(player)
    return players


class RealtimeBackend(PersistenceBackend):
    """Subscribe to full-collection snapshots and push writes over REST."""

    mode = "realtime"

    def __init__(
        self,
        store: PlayerRepository,
        notifier: Notifier,
        base_url: Optional[str] = None,
        collection: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
        listen: Optional[bool] = None,
        reconnect_delay: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(store, notifier)
        self._base_url = (base_url or settings.REALTIME_DB_URL).rstrip("/")
        self._collection = (collection or settings.REALTIME_COLLECTION).strip("/")
        self._auth_token = settings.REALTIME_AUTH_TOKEN if auth_token is None else auth_token
        self._timeout = settings.REALTIME_TIMEOUT if timeout is None else timeout
        self._listen = settings.REALTIME_LISTEN if listen is None else listen
        self._reconnect_delay = (
            settings.REALTIME_RECONNECT_DELAY if reconnect_delay is None else reconnect_delay
        )
        self._client = client or httpx.Client(timeout=self._timeout)
        self._on_snapshot: Optional[SnapshotCallback] = None
        self._stop = threading.Event()
        self._listener: Optional[threading.Thread] = None

    # ── URLs ──

    def _collection_url(self) -> str:
        return f"{self._base_url}/{self._collection}.json"

    def _child_url(self, player_id: str) -> str:
        return f"{self._base_url}/{self._collection}/{player_id}.json"

    def _params(self, **extra: str) -> dict[str, str]:
        params = dict(extra)
        if self._auth_token:
            params["auth"] = self._auth_token
        return params

    # ── Availability probe ──

    def probe(self) -> bool:
        """True when the store answers; used once for mode selection."""
        try:
            resp = self._client.get(
                f"{self._base_url}/.json", params=self._params(shallow="true")
            )
        except httpx.HTTPError as exc:
            logger.warning("Realtime store unreachable at %s: %s", self._base_url, exc)
            return False
        if not resp.is_success:
            logger.warning(
                "Realtime store probe returned status=%d", resp.status_code
            )
        return resp.is_success

    # ── Subscription ──

    def start(self) -> None:
        self.subscribe(self._store.replace_all)
        if self._listen:
            self._start_listener()

    def subscribe(self, on_snapshot: SnapshotCallback) -> None:
        """Register the snapshot callback and deliver the current collection."""
        self._on_snapshot = on_snapshot
        self.refresh()

    def refresh(self) -> bool:
        """Fetch the whole collection and hand it to the subscriber."""
        try:
            resp = self._client.get(self._collection_url(), params=self._params())
            resp.raise_for_status()
            players = parse_snapshot(resp.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Snapshot fetch failed: %s", exc)
            self._notifier.error("Database connection error")
            return False

        SNAPSHOTS_RECEIVED.inc()
        if self._on_snapshot is not None:
            self._on_snapshot(players)
        logger.info("Loaded %d players from realtime store", len(players))
        return True

    # ── Writes ──

    def save(self, player: Player) -> bool:
        operation = "update" if player.id else "create"
        try:
            if player.id:
                resp = self._client.patch(
                    self._child_url(player.id),
                    params=self._params(),
                    json=player.to_document(),
                )
                resp.raise_for_status()
            else:
                resp = self._client.post(
                    self._collection_url(),
                    params=self._params(),
                    json=player.to_document(),
                )
                resp.raise_for_status()
                player.id = resp.json()["name"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            PLAYERS_SAVED.labels(mode=self.mode, operation=operation, outcome="failure").inc()
            logger.error("Error saving player to realtime store: %s", exc)
            self._notifier.error("Error while saving")
            return False

        PLAYERS_SAVED.labels(mode=self.mode, operation=operation, outcome="success").inc()
        logger.info("Player %sd", operation, extra={"mode": self.mode, "player_id": player.id})
        if not self.refresh():
            logger.warning("Player %s saved but the roster could not be reloaded", player.id)
        return True

    def delete(self, player_id: str) -> bool:
        try:
            resp = self._client.delete(self._child_url(player_id), params=self._params())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            PLAYERS_DELETED.labels(mode=self.mode, outcome="failure").inc()
            logger.error("Error deleting player %s: %s", player_id, exc)
            self._notifier.error("Error while deleting")
            return False

        PLAYERS_DELETED.labels(mode=self.mode, outcome="success").inc()
        logger.info("Player deleted", extra={"mode": self.mode, "player_id": player_id})
        if not self.refresh():
            logger.warning("Player %s deleted but the roster could not be reloaded", player_id)
        return True

    # ── Change stream ──

    def _start_listener(self) -> None:
        self._stop.clear()
        self._listener = threading.Thread(
            target=self._listen_forever, name="realtime-listener", daemon=True
        )
        self._listener.start()

    def _listen_forever(self) -> None:
        """Follow the server-sent event stream, reconnecting after errors."""
        while not self._stop.is_set():
            try:
                self._consume_stream()
            except httpx.HTTPError as exc:
                logger.warning("Realtime stream interrupted: %s", exc)
            if self._stop.wait(self._reconnect_delay):
                break
            logger.info("Reconnecting to realtime stream...")

    def _consume_stream(self) -> None:
        with self._client.stream(
            "GET",
            self._collection_url(),
            params=self._params(),
            headers={"Accept": "text/event-stream"},
            timeout=httpx.Timeout(self._timeout, read=None),
        ) as resp:
            resp.raise_for_status()
            event: Optional[str] = None
            for line in resp.iter_lines():
                if self._stop.is_set():
                    return
                if line.startswith("event:"):
                    event = line[len("event:"):].strip()
                elif line.startswith("data:"):
                    self.handle_stream_event(event)
                    if event in STREAM_CLOSE_EVENTS:
                        return

    def handle_stream_event(self, event: Optional[str]) -> None:
        """Any data change re-delivers the whole collection."""
        if event in STREAM_DATA_EVENTS:
            self.refresh()
        elif event in STREAM_CLOSE_EVENTS:
            logger.warning("Realtime stream closed by server: %s", event)
            self._notifier.error("Database connection error")

    def close(self) -> None:
        self._stop.set()
        if self._listener is not None:
            self._listener.join(timeout=1.0)
        self._client.close()

    def describe(self) -> dict:
        return {
            "mode": self.mode,
            "collection": self._collection,
            "listening": bool(self._listener and self._listener.is_alive()),
        }
