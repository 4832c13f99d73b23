"""
Plexzora — FastAPI Backend
Shareable form links with expiry, daily quotas and premium subscriptions
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from db.database import engine, SessionLocal, init_models
from dependencies.auth import verify_admin
from routers import forms, submissions, public, subscriptions, admin
from services.settings_store import get_policy

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_models()
    async with SessionLocal() as db:
        await get_policy(db)
    logger.info("Plexzora API starting...")
    yield
    # Shutdown
    await engine.dispose()
    logger.info("Plexzora API shut down.")


app = FastAPI(
    title="Plexzora Forms API",
    description="Form links, submissions and subscription-based restriction policy",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ── Routers ────────────────────────────────────────────────
app.include_router(forms.router, prefix="/api/forms", tags=["Forms"])
app.include_router(submissions.router, prefix="/api/submissions", tags=["Submissions"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["Subscriptions"])
app.include_router(
    admin.router,
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin)],
)
app.include_router(public.router, prefix="/f", tags=["Public Forms"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "Plexzora API"}
