# app/main.py
"""
FastAPI application entry point.
Runs schema migrations, wires the bot services, and either starts Telegram
long polling or exposes the webhook route. Also serves a small read-only API.
"""

import asyncio
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from app.routers import chats, health, telegram
from app.database import run_migrations
from app.config import settings
from app.services.container import build_services
from app.services.telegram_poller import start_polling
from app.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Parking Time Tracker",
    description="Telegram bot that records parking tickets and keeps day/night monthly totals.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(telegram.router, prefix="/api/v1", tags=["🤖 Telegram"])
app.include_router(chats.router,    prefix="/api/v1", tags=["🅿️  Parking Totals"])
app.include_router(health.router,   prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Parking bot starting up...")
    try:
        applied = run_migrations()
    except Exception as e:
        logger.critical(f"Database initialisation failed: {e}", exc_info=True)
        raise
    logger.info(f"✅ Database ready ({len(applied)} migration(s) applied)")

    app.state.bot = build_services()
    app.state.poller = None

    if settings.TELEGRAM_MODE == "polling":
        app.state.poller = asyncio.create_task(start_polling(app.state.bot), name="telegram-poller")
        logger.info("📡 Telegram mode: long polling")
    else:
        logger.info("🌐 Telegram mode: webhook at /api/v1/telegram/webhook")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Parking bot shutting down...")
    poller = getattr(app.state, "poller", None)
    if poller is not None:
        poller.cancel()
        await asyncio.gather(poller, return_exceptions=True)
    bot = getattr(app.state, "bot", None)
    if bot is not None:
        await bot.aclose()
