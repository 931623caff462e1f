"""
nexus.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn nexus.api.main:app --reload --port 8000
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

from nexus.api.deps import get_engine, get_media_config  # noqa: E402
from nexus.api.routes.community_voice import router as community_voice_router  # noqa: E402
from nexus.api.routes.livekit import router as livekit_router  # noqa: E402
from nexus.api.routes.post_voice import router as post_voice_router  # noqa: E402
from nexus.api.routes.posts import router as posts_router  # noqa: E402
from nexus.errors import InvariantViolation, VoiceError  # noqa: E402

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
    """Startup/shutdown lifecycle — warm the DB engine, report media status."""
    engine = get_engine()
    media = get_media_config()
    logger.info("Nexus API started — engine ready (%s)", engine.url.database)
    if not media.configured:
        logger.warning("LiveKit is not configured — voice joins will be refused.")
    yield
    logger.info("Nexus API shutting down")


app = FastAPI(
    title="Nexus Voice API",
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


@app.exception_handler(VoiceError)
async def voice_error_handler(request: Request, exc: VoiceError) -> JSONResponse:
    if isinstance(exc, InvariantViolation):
        logger.error("Invariant violation on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(community_voice_router, prefix="/api")
app.include_router(post_voice_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(livekit_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
