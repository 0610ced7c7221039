# app/services/duplicate_guard.py
"""
Duplicate check for parking sessions.
A session is a duplicate when the chat already has a row with the same plate
and the same start instant. Runs before the insert so the monthly total is
never touched for a resubmitted ticket; the unique constraint on
parking_sessions catches anything that races past it.
"""

from datetime import datetime
from sqlalchemy.orm import Session
from app.models.parking_session import ParkingSession


def is_duplicate(db: Session, chat_id: int, car_plate: str, start_time: datetime) -> bool:
    existing = (
        db.query(ParkingSession.id)
        .filter(
            ParkingSession.chat_id == chat_id,
            ParkingSession.car_plate == car_plate,
            ParkingSession.start_time == start_time,
        )
        .first()
    )
    return existing is not None
