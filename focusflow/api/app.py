"""
FastAPI application: FocusFlow focus-session API.
Runs on http://127.0.0.1:8765 by default.

Singletons (database, stores, services, notifier, clock) live on app.state;
each call to create_app() builds an independent instance.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..breaks.state_machine import BreakStateMachine
from ..breaks.sweeper import overdue_sweep_loop
from ..config import Config, config
from ..errors import FocusFlowError
from ..notify.email import EmailNotifier, Notifier
from ..scoring.service import FocusScoring
from ..sessions.lifecycle import SessionLifecycle
from ..store.database import Database
from ..store.directory import UserDirectory
from ..store.focus_state import FocusStateStore
from ..store.gamification import GamificationStore
from ..store.sessions import SessionStore

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Lifespan: migrates the schema and wires all per-app state
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Config = app.state.config
    db = Database(cfg.database_path)
    db.migrate()

    directory = UserDirectory(db)
    session_store = SessionStore(db)
    focus_state = FocusStateStore(db)
    gamification = GamificationStore(db)

    breaks = BreakStateMachine(
        session_store, focus_state, directory, app.state.notifier, app_url=cfg.app_url
    )

    app.state.db = db
    app.state.services = {
        "directory": directory,
        "session_store": session_store,
        "focus_state": focus_state,
        "gamification": gamification,
        "sessions": SessionLifecycle(session_store, gamification),
        "breaks": breaks,
        "scoring": FocusScoring(focus_state, trend_window=cfg.score_trend_window),
    }

    sweep_task: Optional[asyncio.Task] = None
    if cfg.sweep_interval_s > 0:
        sweep_task = asyncio.create_task(
            overdue_sweep_loop(breaks, lambda: app.state.clock(), cfg.sweep_interval_s)
        )

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass


# ---------------------------------------------------------------------------
# Error responses: every failure is {"error": "..."}
# ---------------------------------------------------------------------------

async def _focusflow_error(request: Request, exc: FocusFlowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
    )


async def _request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def _unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(cfg: Optional[Config] = None, notifier: Optional[Notifier] = None) -> FastAPI:
    cfg = cfg or config
    app = FastAPI(
        title="FocusFlow",
        description="Group focus sessions with break tracking and reliability scoring",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.notifier = notifier or EmailNotifier(cfg)
    app.state.clock = time.time

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FocusFlowError, _focusflow_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)

    from .routers import activity, breaks, gamification, legacy, privacy, sessions

    # legacy aliases first: /sessions/join and /sessions/recap are fixed paths
    app.include_router(legacy.router)
    app.include_router(sessions.router)
    app.include_router(breaks.router)
    app.include_router(activity.router)
    app.include_router(gamification.router)
    app.include_router(privacy.router)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
