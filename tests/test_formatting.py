"""Tests for display helpers and message texts."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime
from app.services import messages
from app.services.record_store import MonthTotals
from app.utils.clock import local_now
from app.utils.formatting import (
    escape_markdown, format_date_range, format_detailed_duration, format_duration, truncate_text,
)


def test_format_duration():
    assert format_duration(45) == "45 minutes"
    assert format_duration(60) == "1 hour"
    assert format_duration(135) == "2h 15m"
    assert format_duration(0) == "0 minutes"


def test_format_detailed_duration():
    assert format_detailed_duration(1) == "1 minute"
    assert format_detailed_duration(120) == "2 hours"
    assert format_detailed_duration(61) == "1 hour and 1 minute"


def test_date_range_collapses_same_day():
    assert format_date_range(datetime(2025, 8, 1, 9), datetime(2025, 8, 1, 10)) == "01/08/2025"
    assert format_date_range(datetime(2025, 8, 1, 22), datetime(2025, 8, 2, 1)) == "01/08/2025 - 02/08/2025"


def test_escape_markdown():
    assert escape_markdown("JOHN_DOE *VIP*") == "JOHN\\_DOE \\*VIP\\*"


def test_truncate_text():
    assert truncate_text("short", 10) == "short"
    assert truncate_text("x" * 20, 10) == "xxxxxxx..."


def test_batch_summary_counts():
    text = messages.batch_summary(2, 1, 0, MonthTotals(total_minutes=265, day_minutes=205, night_minutes=60))
    assert "✅ Recorded: 2" in text
    assert "🚫 Duplicates: 1" in text
    assert "❌ Failed: 0" in text
    assert "4 hours and 25 minutes" in text


def test_extraction_failed_strips_backticks_from_ocr_text():
    text = messages.extraction_failed("No times", partial_text="ticket `x` 22:35")
    assert "`ticket 'x' 22:35`" in text


def test_local_now_with_timezone_is_naive():
    assert local_now("UTC").tzinfo is None
