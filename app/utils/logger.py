# app/utils/logger.py
"""
Logging setup for the bot: console plus a size-rotated file under logs/.

Bot API URLs embed the bot token (https://api.telegram.org/bot<token>/...),
so every handler carries a filter that masks the Telegram token and the
Gemini key before a record is written anywhere.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = settings.LOG_DIR or os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs"
)

# Libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "PIL", "urllib3")

_configured = False


class SecretMaskingFilter(logging.Filter):
    """Replace configured secrets in the formatted message with '***'."""

    def __init__(self, secrets):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self.secrets:
            masked = masked.replace(secret, "***")
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    masking = SecretMaskingFilter([settings.TELEGRAM_BOT_TOKEN, settings.GEMINI_API_KEY])

    handlers = [logging.StreamHandler()]
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=os.path.join(LOG_DIR, settings.LOG_FILE),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        ))
    except OSError as e:
        # Read-only deployments still get console logs
        logging.getLogger(__name__).warning(f"File logging disabled ({LOG_DIR}): {e}")

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    for handler in handlers:
        handler.setLevel(LOG_LEVEL)
        handler.setFormatter(fmt)
        handler.addFilter(masking)
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
