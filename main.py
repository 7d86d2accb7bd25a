# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Tennis Roster Service
=====================
Roster manager for tennis players: create, edit, delete, filter and display
player records with contact info, level, weekly availability and either an
empathy rating or preferred / unwanted partner lists.

Persistence goes to a realtime document store when it is reachable at
startup, otherwise to a local key-value blob. The choice holds for the whole
session.

Port: 8010
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from roster.controllers import (
    editor_controller,
    player_controller,
    system_controller,
    ui_controller,
)
from roster.core.config import settings
from roster.core.dependencies import init_roster, shutdown_roster
from roster.core.logging import get_logger
from roster.middleware import MetricsMiddleware, RequestContextMiddleware

logger = get_logger(settings.SERVICE_NAME)


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Pick the persistence backend and load the roster; release it on shutdown."""
    roster = init_roster()
    logger.info(
        "Roster service starting: mode=%s, players=%d",
        roster.backend.mode, roster.store.count(),
    )
    yield
    shutdown_roster()
    logger.info("Roster service shut down")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Tennis Roster Service",
    description="Tennis player roster with availability filters and realtime or local persistence.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(player_controller.router)
app.include_router(editor_controller.router)
app.include_router(ui_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT)
