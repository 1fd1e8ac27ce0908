"""
merzah.api.main — FastAPI application entry point
==================================================

Run with::

    python -m merzah.api            # port from config.yaml (api_port)
    uvicorn merzah.api.main:app --reload --port 8000

The periodic rotation job runs in its own process (``python -m merzah``);
the API only exposes the manual trigger under ``/api/admin/rotation/run``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from merzah.api.deps import get_engine  # noqa: E402
from merzah.api.routes.admin import router as admin_router  # noqa: E402
from merzah.api.routes.events import router as events_router  # noqa: E402
from merzah.api.routes.mosques import router as mosques_router  # noqa: E402
from merzah.errors import EventNotFound, MosqueNotFound, ValidationError  # noqa: E402

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


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("Merzah API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Merzah API shutting down")


app = FastAPI(
    title="Merzah Events API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Service errors → HTTP
# ---------------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(EventNotFound)
@app.exception_handler(MosqueNotFound)
async def _not_found(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# Mount routers
app.include_router(events_router, prefix="/api")
app.include_router(mosques_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
