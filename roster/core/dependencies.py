# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire the record store, the persistence
backend and the roster services.

The backend is chosen once, at startup: the realtime store when it is
configured and answers the probe, the local blob otherwise. No mixed mode and
no switching for the rest of the session.
"""

from typing import Optional

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.repositories.backend import PersistenceBackend
from roster.repositories.local_backend import LocalBackend
from roster.repositories.player_repository import PlayerRepository
from roster.repositories.realtime_backend import RealtimeBackend
from roster.services.form_controller import FormController
from roster.services.notifier import Notifier
from roster.services.roster_service import RosterService

logger = get_logger(__name__)

_roster: Optional[RosterService] = None


def select_backend(store: PlayerRepository, notifier: Notifier) -> PersistenceBackend:
    """Probe the realtime store; fall back to local storage."""
    if settings.REALTIME_DB_URL:
        realtime = RealtimeBackend(store, notifier)
        if realtime.probe():
            logger.info("Realtime mode: database connected", extra={"mode": "realtime"})
            return realtime
        realtime.close()
        logger.warning("Realtime store not available, using local storage fallback")
    else:
        logger.info("No realtime store configured, using local storage")
    return LocalBackend(store, notifier)


def init_roster(
    backend: Optional[PersistenceBackend] = None,
    variant: Optional[str] = None,
) -> RosterService:
    """Build the roster singleton and populate it from its backend."""
    global _roster
    if backend is None:
        backend = select_backend(PlayerRepository(), Notifier())
    store, notifier = backend.store, backend.notifier
    roster = RosterService(store, backend, notifier, variant=variant)
    roster.start()
    _roster = roster
    return roster


def shutdown_roster() -> None:
    global _roster
    if _roster is not None:
        _roster.backend.close()
        _roster = None


# ── FastAPI dependency functions ──

def get_roster_service() -> RosterService:
    if _roster is None:
        raise RuntimeError("Roster service is not initialised")
    return _roster


def get_form_controller() -> FormController:
    return get_roster_service().form
