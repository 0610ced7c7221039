# app/services/messages.py
"""
User-facing message texts (Telegram legacy Markdown).
Kept in one place so handlers only decide *what* to say.
"""

from typing import Iterable, Optional

from app.models.monthly_total import MonthlyTotal
from app.models.parking_session import ParkingSession
from app.services.record_store import MonthTotals, ResetAllSummary
from app.utils.formatting import (
    code_block_safe, confidence_emoji, escape_markdown, format_date, format_date_range,
    format_detailed_duration, format_duration, format_month_name, format_time, truncate_text,
)

GENERIC_ERROR = "❌ An error occurred while processing your image. Please try again."
STILL_PROCESSING = "⏳ Still processing your previous image. Please wait..."
IMAGE_RECEIVED = "📸 Image received! Processing..."
EXTRACTING_TEXT = "🔍 Extracting text from image..."
ANALYZING = "🤖 Analyzing time information with AI..."
NO_READABLE_TEXT = "Could not extract readable text from the image. Please try a clearer photo."
NOT_AN_IMAGE = "📸 Please send an image file for parking time extraction."

HELP = """
🚗 *Parking Duration Tracker*

*How it works:*
1. Take a photo or screenshot of the visitor parking ticket
2. Send it here (several at once is fine)
3. Start/end times are read with OCR + AI
4. Duration is split into day (08:00–24:00) and night (00:00–08:00) minutes and added to this month's total

*Commands:*
/current - This month's sessions and totals
/history - Monthly totals with their sessions
/recent - Last parking sessions
/reset - Reset current month (requires confirmation)
/kaboom - Delete ALL history for this chat (requires confirmation)
/help - This help message

*Tips:*
• Clear, well-lit photos work best
• The same ticket is never counted twice
"""


def totals_block(totals: MonthTotals) -> str:
    return (
        f"☀️ Day: *{format_detailed_duration(totals.day_minutes)}*\n"
        f"🌙 Night: *{format_detailed_duration(totals.night_minutes)}*\n"
        f"📊 Total: *{format_detailed_duration(totals.total_minutes)}*"
    )


def session_line(session: ParkingSession) -> str:
    visitor = f"{escape_markdown(session.visitor_name)} - " if session.visitor_name else ""
    return (
        f"• {format_date_range(session.start_time, session.end_time)}: "
        f"{visitor}{escape_markdown(session.car_plate)}\n"
        f"  {format_time(session.start_time)} - {format_time(session.end_time)} "
        f"({format_duration(session.duration_minutes)}, "
        f"☀️ {session.day_minutes}m / 🌙 {session.night_minutes}m)"
    )


def recorded(session: ParkingSession, totals: Optional[MonthTotals]) -> str:
    text = (
        f"{confidence_emoji(session.confidence)} *Parking session recorded!*\n\n"
        f"👤 Visitor: {escape_markdown(session.visitor_name)}\n"
        f"🚗 Car Plate: {escape_markdown(session.car_plate)}\n"
        f"📅 Date: {format_date_range(session.start_time, session.end_time)}\n"
        f"🕐 Start: {format_time(session.start_time)}\n"
        f"🕐 End: {format_time(session.end_time)}\n"
        f"⏱️ Duration: {format_detailed_duration(session.duration_minutes)} "
        f"(☀️ {format_duration(session.day_minutes)} / 🌙 {format_duration(session.night_minutes)})\n"
        f"🤖 Confidence: {session.confidence}\n"
    )
    if totals is not None:
        text += f"\n*This month:*\n{totals_block(totals)}"
    return text


def duplicate(car_plate: str, start_time) -> str:
    return (
        "🚫 *Duplicate Entry Detected*\n\n"
        "This parking session already exists:\n"
        f"🚗 Car: {escape_markdown(car_plate)}\n"
        f"📅 Date: {format_date(start_time)}\n"
        f"🕐 Start: {format_time(start_time)}\n\n"
        "No changes made to your total."
    )


def extraction_failed(reason: str, partial_text: Optional[str] = None,
                      matched_fragment: Optional[str] = None) -> str:
    text = f"❌ {escape_markdown(reason)}"
    if matched_fragment:
        text += f"\n\nTime-related text found: {escape_markdown(matched_fragment)}"
    if partial_text:
        text += f"\n\nExtracted text:\n`{code_block_safe(truncate_text(partial_text, 200))}`"
    return text + "\n\nPlease ensure the image contains clear start and end times."


def save_failed(reason: Optional[str]) -> str:
    return f"❌ Could not record this session: {escape_markdown(reason or 'unknown error')}."


def batch_received(count: int) -> str:
    return f"📸 Received {count} images! Processing them as one batch..."


def batch_summary(succeeded: int, duplicates: int, failed: int,
                  totals: Optional[MonthTotals]) -> str:
    text = (
        "📦 *Batch complete*\n\n"
        f"✅ Recorded: {succeeded}\n"
        f"🚫 Duplicates: {duplicates}\n"
        f"❌ Failed: {failed}\n"
    )
    if totals is not None:
        text += f"\n*This month:*\n{totals_block(totals)}"
    return text


def current_month(month: int, year: int, totals: MonthTotals,
                  sessions: Iterable[ParkingSession]) -> str:
    sessions = list(sessions)
    header = f"🅿️ *{format_month_name(month, year)}*\n"
    if totals.is_empty and not sessions:
        return header + "No parking time recorded yet this month."
    body = "\n".join(session_line(s) for s in sessions)
    return f"{header}\n{totals_block(totals)}\n\n*Sessions ({len(sessions)}):*\n{body}"


def history(totals: Iterable[MonthlyTotal], sessions: Iterable[ParkingSession]) -> str:
    totals = list(totals)
    if not totals:
        return "📊 No parking history found."

    by_month: dict[tuple[int, int], list[ParkingSession]] = {}
    for s in sessions:
        by_month.setdefault((s.year, s.month), []).append(s)

    parts = ["📊 *Parking History:*"]
    for row in totals:
        parts.append(
            f"\n*{format_month_name(row.month, row.year)}*: "
            f"{format_detailed_duration(row.total_duration_minutes)}\n"
            f"☀️ {format_duration(row.day_minutes)} / 🌙 {format_duration(row.night_minutes)}"
        )
        parts.extend(session_line(s) for s in by_month.get((row.year, row.month), []))
    return "\n".join(parts)


def recent(sessions: Iterable[ParkingSession]) -> str:
    sessions = list(sessions)
    if not sessions:
        return "📝 No parking sessions found."
    return "📝 *Recent Parking Sessions:*\n\n" + "\n".join(session_line(s) for s in sessions)


# ── Reset flow ───────────────────────────────────────────────────────────────

def nothing_to_reset_month(month: int, year: int) -> str:
    return (f"🅿️ *{format_month_name(month, year)}*\n\n"
            "No parking records to reset - your total is already 0.")


def nothing_to_reset_all() -> str:
    return "🅿️ No parking history to delete."


def confirm_reset_month(month: int, year: int, totals: MonthTotals) -> str:
    return (
        "🚨 *Reset Confirmation*\n\n"
        f"Are you sure you want to reset *{format_month_name(month, year)}*?\n\n"
        "This will:\n"
        "• Delete ALL parking records for this month\n"
        "• Remove this month's total\n"
        "• Cannot be undone\n\n"
        f"{totals_block(totals)}"
    )


def confirm_reset_all(months: int, totals: MonthTotals) -> str:
    return (
        "💥 *FULL RESET Confirmation*\n\n"
        "Are you sure you want to delete *ALL* parking history for this chat?\n\n"
        f"This will remove {months} month(s) of totals and every recorded session.\n"
        "This cannot be undone.\n\n"
        f"{totals_block(totals)}"
    )


def reset_month_done(month: int, year: int) -> str:
    return (f"✅ *Reset Complete*\n\n{format_month_name(month, year)} parking records have been cleared.\n\n"
            "Total reset to: *0 minutes*")


def reset_all_done(summary: ResetAllSummary) -> str:
    return (f"✅ *Full Reset Complete*\n\n{summary.sessions_deleted} session(s) and "
            f"{summary.months_deleted} monthly total(s) deleted.")


RESET_FAILED = "❌ *Reset Failed*\n\nAn error occurred while resetting. Please run the command again."
RESET_CANCELLED = "🅿️ *Reset Cancelled*\n\nYour parking records remain unchanged."
RESET_EXPIRED = "⌛ *Reset request expired*\n\nRun the command again if you still want to reset."
NOT_AUTHORIZED = "Only the user who initiated the reset can confirm."
