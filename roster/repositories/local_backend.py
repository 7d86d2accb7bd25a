# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Local fallback backend.
The whole roster is one JSON array stored under a fixed key in a key-value
table (SQLite by default). Read once at startup, rewritten after every
mutation. Unlike the realtime backend, writes mutate the record store
directly.
"""

import json
import random
import string
import time
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.metrics.prometheus import BLOB_WRITES, PLAYERS_DELETED, PLAYERS_SAVED
from roster.models.domain import Player, parse_stored_player
from roster.repositories.backend import PersistenceBackend
from roster.repositories.player_repository import PlayerRepository
from roster.services.notifier import Notifier

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Locally unique token: player_<epoch ms>_<9 base36 chars>."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"player_{int(time.time() * 1000)}_{suffix}"


class LocalBackend(PersistenceBackend):
    """Synchronous whole-collection blob persistence."""

    mode = "local"

    def __init__(
        self,
        store: PlayerRepository,
        notifier: Notifier,
        database_url: Optional[str] = None,
        storage_key: Optional[str] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        super().__init__(store, notifier)
        self._engine = engine or create_engine(database_url or settings.LOCAL_DATABASE_URL)
        self._key = storage_key or settings.LOCAL_STORAGE_KEY
        self._table_ready = False

    def _ensure_table(self) -> None:
        if self._table_ready:
            return
        with self._engine.begin() as conn:
            conn.execute(
                text(
                    "CREATE TABLE IF NOT EXISTS kv_store ("
                    " key VARCHAR(255) PRIMARY KEY,"
                    " value TEXT NOT NULL)"
                )
            )
        self._table_ready = True

    # ── Blob I/O ──

    def load_all(self) -> list[Player]:
        """Read the blob; anything unreadable yields an empty roster."""
        try:
            self._ensure_table()
            with self._engine.connect() as conn:
                row = conn.execute(
                    text("SELECT value FROM kv_store WHERE key = :key"),
                    {"key": self._key},
                ).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Error reading local storage: %s", exc)
            return []

        if row is None:
            return []
        try:
            raw = json.loads(row[0])
        except (TypeError, ValueError) as exc:
            logger.error("Error loading data, resetting roster: %s", exc)
            return []
        if not isinstance(raw, list):
            logger.error("Stored roster is not a list, resetting")
            return []

        players: list[Player] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                player, dropped = parse_stored_player(item)
            except ValidationError as exc:
                logger.warning("Skipping unreadable stored player: %s", exc)
                continue
            if dropped:
                logger.warning(
                    "Stored player %s: discarded unreadable %s", player.id, ", ".join(dropped)
                )
            players.append(player)
        return players

    def persist_all(self, players: list[Player]) -> bool:
        """Rewrite the whole blob."""
        blob = json.dumps([p.to_record() for p in players])
        try:
            self._ensure_table()
            with self._engine.begin() as conn:
                conn.execute(
                    text(
                        "INSERT INTO kv_store (key, value) VALUES (:key, :value) "
                        "ON CONFLICT (key) DO UPDATE SET value = excluded.value"
                    ),
                    {"key": self._key, "value": blob},
                )
        except SQLAlchemyError as exc:
            BLOB_WRITES.labels(outcome="failure").inc()
            logger.error("Error writing local storage: %s", exc)
            self._notifier.warning("Changes kept in memory; local storage write failed")
            return False
        BLOB_WRITES.labels(outcome="success").inc()
        return True

    # ── Lifecycle ──

    def start(self) -> None:
        players = self.load_all()
        self._store.replace_all(players)
        logger.info("Loaded %d players from local storage", len(players))

    # ── Writes ──

    def save(self, player: Player) -> bool:
        with self._store.lock:
            if player.id:
                existing = self._store.get_by_id(player.id)
                if existing is None:
                    PLAYERS_SAVED.labels(mode=self.mode, operation="update", outcome="failure").inc()
                    logger.warning("Player with ID %s not found", player.id)
                    self._notifier.error("Player no longer exists")
                    return False
                merged = Player.model_validate({**existing.to_record(), **player.to_record()})
                self._store.upsert(merged)
                operation = "update"
            else:
                player.id = generate_id()
                self._store.upsert(player)
                operation = "create"
            self.persist_all(self._store.get_all())

        PLAYERS_SAVED.labels(mode=self.mode, operation=operation, outcome="success").inc()
        logger.info(
            "Player %sd locally", operation, extra={"mode": self.mode, "player_id": player.id}
        )
        return True

    def delete(self, player_id: str) -> bool:
        with self._store.lock:
            removed = self._store.remove(player_id)
            if removed is None:
                logger.info("Delete of absent player %s ignored", player_id)
                return True
            self.persist_all(self._store.get_all())
        PLAYERS_DELETED.labels(mode=self.mode, outcome="success").inc()
        logger.info(
            "Player deleted locally: %s", removed.full_name,
            extra={"mode": self.mode, "player_id": player_id},
        )
        return True

    def close(self) -> None:
        self._engine.dispose()

    def describe(self) -> dict:
        return {"mode": self.mode, "storage_key": self._key}
