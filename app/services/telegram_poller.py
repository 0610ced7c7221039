# app/services/telegram_poller.py
"""
Telegram polling service: pulls updates via getUpdates long polling.

Used when TELEGRAM_MODE=polling (no public URL needed for a webhook).
Each update is dispatched as its own task so a slow OCR/AI call for one user
never holds up the loop. Reconnects with exponential backoff on failure.
"""

import asyncio

from app.config import settings
from app.exceptions import TransportError
from app.services.event_dispatcher import schedule_update
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Reconnect delay in seconds (doubles on each failure, max 60s)
_MIN_BACKOFF = 3
_MAX_BACKOFF = 60


async def poll_once(bot, offset, timeout: int):
    """Fetch one batch of updates, schedule them, and return the next offset."""
    updates = await bot.telegram.get_updates(offset, timeout)
    for update in updates:
        offset = update["update_id"] + 1
        try:
            schedule_update(update, bot)
        except Exception as e:
            logger.error(f"Could not schedule update {update.get('update_id')}: {e}", exc_info=True)
    return offset


async def start_polling(bot, timeout: int = None):
    """Long-poll forever. Cancel the task to stop."""
    timeout = timeout or settings.TELEGRAM_POLL_TIMEOUT
    offset = None
    backoff = _MIN_BACKOFF

    logger.info("📡 Telegram polling started")
    while True:
        try:
            offset = await poll_once(bot, offset, timeout)
            backoff = _MIN_BACKOFF  # reset on success
        except asyncio.CancelledError:
            logger.info("🛑 Telegram polling stopped")
            raise
        except TransportError as e:
            logger.warning(f"❌ getUpdates failed: {e}. Retry in {backoff}s")
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, _MAX_BACKOFF)
        except Exception as e:
            logger.error(f"❌ Polling loop error: {e}", exc_info=True)
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, _MAX_BACKOFF)
