"""
eventquest.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn eventquest.api.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from eventquest.api.auth import router as auth_router  # noqa: E402
from eventquest.api.deps import get_config, get_engine  # noqa: E402
from eventquest.api.errors import install_error_handlers  # noqa: E402
from eventquest.api.routes.events import router as events_router  # noqa: E402
from eventquest.api.routes.identities import router as identities_router  # noqa: E402
from eventquest.api.routes.profile import router as profile_router  # noqa: E402
from eventquest.api.routes.tasks import router as tasks_router  # noqa: E402
from eventquest.database.engine import init_db, run_db  # noqa: E402
from eventquest.services.token_staging import sweep_expired_request_tokens  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


async def _sweep_request_tokens(engine, interval: int, ttl: int) -> None:
    """Periodically drop Twitter request tokens nobody came back for."""
    while True:
        await asyncio.sleep(interval)
        try:
            await run_db(sweep_expired_request_tokens, engine, ttl_seconds=ttl)
        except Exception:
            logger.exception("Request-token sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine, run the token sweep."""
    engine = get_engine()
    cfg = get_config()
    await run_db(init_db, engine)
    sweeper = asyncio.create_task(
        _sweep_request_tokens(
            engine, cfg.token_sweep_interval_seconds, cfg.twitter_token_ttl_seconds
        )
    )
    logger.info("EventQuest API started — engine ready (%s)", engine.url.database)
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("EventQuest API shutting down")


app = FastAPI(
    title="EventQuest API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(identities_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
