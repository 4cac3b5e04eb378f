"""
agora.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn agora.api.main:app --reload --port 8000
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

from agora.api.auth import router as auth_router  # noqa: E402
from agora.api.deps import get_engine  # noqa: E402
from agora.api.routes.forums import router as forums_router  # noqa: E402
from agora.api.routes.me import router as me_router  # noqa: E402
from agora.api.routes.posts import router as posts_router  # noqa: E402
from agora.api.routes.replies import router as replies_router  # noqa: E402
from agora.api.routes.threads import router as threads_router  # noqa: E402
from agora.errors import ThreadError  # noqa: E402

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
    logger.info("Agora API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Agora API shutting down")


app = FastAPI(
    title="Agora Discussion API",
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


@app.exception_handler(ThreadError)
async def thread_error_handler(request: Request, exc: ThreadError):
    logger.debug(
        "%s %s → %d %s", request.method, request.url.path, exc.status_code, exc.code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(forums_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(replies_router, prefix="/api")
app.include_router(threads_router, prefix="/api")
app.include_router(me_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
