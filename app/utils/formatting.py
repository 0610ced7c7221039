# app/utils/formatting.py
"""Display helpers for durations, months and Telegram Markdown text."""

import calendar
from datetime import datetime

_MARKDOWN_SPECIAL = ("_", "*", "`", "[")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def format_duration(minutes: int) -> str:
    """Compact form: '45 minutes', '2 hours', '2h 15m'."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return _plural(mins, "minute")
    if mins == 0:
        return _plural(hours, "hour")
    return f"{hours}h {mins}m"


def format_detailed_duration(minutes: int) -> str:
    """Long form: '2 hours and 15 minutes'."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return _plural(mins, "minute")
    if mins == 0:
        return _plural(hours, "hour")
    return f"{_plural(hours, 'hour')} and {_plural(mins, 'minute')}"


def format_month_name(month: int, year: int) -> str:
    return f"{calendar.month_name[month]} {year}"


def format_date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def format_date_range(start: datetime, end: datetime) -> str:
    if start.date() == end.date():
        return format_date(start)
    return f"{format_date(start)} - {format_date(end)}"


def confidence_emoji(confidence: str) -> str:
    return {"high": "🎯", "medium": "✅"}.get(confidence, "⚠️")


def truncate_text(text: str, max_length: int = 100) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def escape_markdown(text: str) -> str:
    """Escape Telegram legacy-Markdown control characters in user-supplied text."""
    for ch in _MARKDOWN_SPECIAL:
        text = text.replace(ch, f"\\{ch}")
    return text


def code_block_safe(text: str) -> str:
    """Legacy Markdown has no escapes inside `code`; drop backticks instead."""
    return text.replace("`", "'")
