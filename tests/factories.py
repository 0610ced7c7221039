"""Test data helpers shared across test modules."""

from datetime import datetime
from app.services.extraction_service import ExtractionSuccess

# "Now" for every store-backed test: August 2025
NOW = datetime(2025, 8, 25, 12, 0)


def add_session(store, chat_id=1001, plate="ABC123", start=datetime(2025, 8, 23, 22, 35),
                end=datetime(2025, 8, 24, 1, 0), day=85, night=60, user_id=42, username="alice"):
    """Insert a session directly through the store."""
    return store.add_session(
        chat_id=chat_id, user_id=user_id, username=username, visitor_name="John Doe",
        car_plate=plate, start_time=start, end_time=end,
        day_minutes=day, night_minutes=night, confidence="high",
    )


def make_extraction(plate="ABC123", start=datetime(2025, 8, 23, 22, 35),
                    end=datetime(2025, 8, 24, 1, 0), visitor="John Doe", confidence="high"):
    return ExtractionSuccess(visitor_name=visitor, car_plate=plate,
                             start_time=start, end_time=end, confidence=confidence)
