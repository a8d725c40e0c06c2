"""
vibes.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn vibes.api.main:app --reload --port 8000
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

from vibes.api.deps import get_engine  # noqa: E402
from vibes.api.routes.engagement import router as engagement_router  # noqa: E402
from vibes.api.routes.feed import router as feed_router  # noqa: E402
from vibes.api.routes.grants import router as grants_router  # noqa: E402
from vibes.api.routes.messages import router as messages_router  # noqa: E402
from vibes.api.routes.notifications import router as notifications_router  # noqa: E402
from vibes.api.routes.projects import router as projects_router  # noqa: E402
from vibes.api.routes.social import router as social_router  # noqa: E402
from vibes.api.routes.stories import router as stories_router  # noqa: E402
from vibes.errors import VibesError  # noqa: E402

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
    logger.info("Vibes API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Vibes API shutting down")


app = FastAPI(
    title="Vibes API",
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


@app.exception_handler(VibesError)
async def vibes_error_handler(request: Request, exc: VibesError) -> JSONResponse:
    """Map service-layer failures to their HTTP status."""
    if exc.status_code >= 500:
        logger.error("Unhandled service error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


# Mount routers
app.include_router(feed_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(engagement_router, prefix="/api")
app.include_router(social_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(stories_router, prefix="/api")
app.include_router(grants_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
