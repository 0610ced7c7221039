# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./parking.db"

    # ── Network (read-only API + webhook) ─────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 8080
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # ── Telegram ──────────────────────────────────────────────────────────
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_MODE: str = "polling"                 # polling | webhook
    TELEGRAM_WEBHOOK_SECRET: Optional[str] = None  # checked against X-Telegram-Bot-Api-Secret-Token
    TELEGRAM_POLL_TIMEOUT: int = 30                # long-poll seconds for getUpdates

    # ── Gemini (AI extraction) ────────────────────────────────────────────
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    # ── OCR ───────────────────────────────────────────────────────────────
    OCR_LANGUAGE: str = "eng"
    MIN_OCR_TEXT_LENGTH: int = 5

    # ── Accounting ────────────────────────────────────────────────────────
    DAY_START_HOUR: int = 8                 # day bucket = [08:00, 24:00)
    BOT_TIMEZONE: Optional[str] = None      # e.g. "Asia/Singapore"; None = host local time

    # ── Submission flow ───────────────────────────────────────────────────
    MEDIA_GROUP_DEBOUNCE_SECONDS: float = 1.0
    PROCESSING_TIMEOUT_SECONDS: int = 300   # stale per-user flag is dropped after this
    CONFIRMATION_TTL_SECONDS: int = 600     # pending reset confirmations expire after this

    # ── Display ───────────────────────────────────────────────────────────
    HISTORY_MONTHS: int = 12
    RECENT_SESSIONS: int = 5

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None           # default: <repo>/logs
    LOG_FILE: str = "bot.log"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 10

    @property
    def TELEGRAM_BOT_URL(self) -> str:
        return f"{self.TELEGRAM_API_BASE}/bot{self.TELEGRAM_BOT_TOKEN}"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
