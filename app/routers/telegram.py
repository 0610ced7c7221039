# app/routers/telegram.py
"""
Telegram webhook endpoint (TELEGRAM_MODE=webhook).
POST /telegram/webhook receives every update for the bot.
"""

from fastapi import APIRouter, Request, HTTPException, status
from app.config import settings
from app.services.event_dispatcher import schedule_update
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/telegram/webhook", summary="Telegram webhook: receives all updates")
async def receive_update(request: Request):
    """
    Always answers 200 for well-formed calls: Telegram retries on non-200 and a
    retried photo would only produce a duplicate notice. Handling runs in the
    background so the response is immediate.
    """
    if settings.TELEGRAM_WEBHOOK_SECRET:
        secret = request.headers.get("X-Telegram-Bot-Api-Secret-Token")
        if secret != settings.TELEGRAM_WEBHOOK_SECRET:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret token")

    try:
        update = await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON, ignored")
        return {"status": "ignored", "reason": "invalid json"}

    try:
        accepted = schedule_update(update, request.app.state.bot)
        return {"status": "ok" if accepted else "ignored", "update_id": update.get("update_id")}
    except Exception as e:
        logger.error(f"Update scheduling error: {e}", exc_info=True)
        return {"status": "error", "detail": str(e)}  # Still return 200
