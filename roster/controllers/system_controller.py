# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints: health, readiness, metrics.
Pure HTTP layer: no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from roster.core.config import settings
from roster.core.dependencies import get_roster_service
from roster.services.roster_service import RosterService

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(roster: RosterService = Depends(get_roster_service)):
    """Liveness probe; reports the persistence mode chosen at startup."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "variant": roster.variant,
        "backend": roster.backend.describe(),
        "players_count": roster.store.count(),
    }


@router.get("/health/ready")
def readiness_check(roster: RosterService = Depends(get_roster_service)):
    """Readiness probe: the roster has been loaded from its backend."""
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "mode": roster.backend.mode,
        "players_loaded": roster.store.count() > 0,
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
