"""
registry/main.py
Application entry point: middleware, routers and startup hooks.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from registry.core.config import settings
from registry.core.database import engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; release pooled connections on shutdown."""
    logger.info("Connecting to database...")
    init_db()
    logger.info("Database ready.")

    yield

    logger.info("Shutting down: disposing database connections.")
    engine.dispose()


# ── Application ────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Training Certificate Registry",
    description="Record trainees and print their certificates and ID cards.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS middleware ────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cookie"],
)


# ── Global error handler ───────────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


# ── Include routers ────────────────────────────────────────────────────────────
from registry.api.auth import router as auth_router
from registry.api.certificate import router as certificate_router
from registry.api.drafts import router as drafts_router
from registry.api.settings import router as settings_router

app.include_router(auth_router)
app.include_router(certificate_router)
app.include_router(settings_router)
app.include_router(drafts_router)


# ── Health check ───────────────────────────────────────────────────────────────
@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": "Training Certificate Registry"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("registry.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
