# app/routers/health.py
"""
Liveness/readiness for the bot process.
Reports the schema version, the update mode (and whether the poller task is
alive), pending in-memory work, and whether the bot token is accepted by
Telegram.
"""

import requests
from datetime import datetime
from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.models.schema_migration import SchemaMigration

router = APIRouter()


def _telegram_status() -> dict:
    if not settings.TELEGRAM_BOT_TOKEN:
        return {"state": "not configured"}
    try:
        resp = requests.get(f"{settings.TELEGRAM_BOT_URL}/getMe", timeout=5)
    except requests.exceptions.ConnectionError:
        return {"state": "unreachable"}
    except requests.exceptions.RequestException as e:
        return {"state": f"error: {type(e).__name__}"}

    if resp.status_code != 200:
        # 401 here means the token was revoked
        return {"state": f"http_{resp.status_code}"}
    bot = resp.json().get("result") or {}
    return {"state": "ok", "bot": bot.get("username")}


def _poller_status(request: Request) -> str:
    if settings.TELEGRAM_MODE != "polling":
        return "disabled (webhook mode)"
    poller = getattr(request.app.state, "poller", None)
    if poller is None:
        return "not started"
    if poller.done():
        return "stopped"
    return "running"


@router.get("/health", summary="Bot health check")
def health_check(request: Request, db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "mode": settings.TELEGRAM_MODE,
        "database": "unknown",
        "schema_version": None,
        "poller": _poller_status(request),
        "pending_media_groups": 0,
        "users_in_flight": 0,
        "telegram": {},
    }

    try:
        result["schema_version"] = db.execute(select(func.max(SchemaMigration.version))).scalar()
        result["database"] = "ok" if result["schema_version"] else "not migrated"
    except SQLAlchemyError as e:
        result["database"] = f"error: {e.__class__.__name__}"
    if result["database"] != "ok":
        result["status"] = "degraded"

    bot = getattr(request.app.state, "bot", None)
    if bot is not None:
        result["pending_media_groups"] = bot.submissions.media_groups.pending_groups
        result["users_in_flight"] = bot.submissions.guard.in_flight

    result["telegram"] = _telegram_status()
    if result["telegram"]["state"] != "ok" or result["poller"] in ("stopped", "not started"):
        result["status"] = "degraded"

    return result
