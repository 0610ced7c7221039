# app/utils/clock.py
"""Wall clock in the bot's local time. Returns naive datetimes, like the stored sessions."""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


def local_now(tz_name: Optional[str] = None) -> datetime:
    tz_name = tz_name or settings.BOT_TIMEZONE
    if not tz_name:
        return datetime.now()
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
