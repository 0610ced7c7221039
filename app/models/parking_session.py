# app/models/parking_session.py
"""
Parking sessions table.
One row per recorded ticket: the visitor, plate, start/end instants and the
day/night split computed at insert time. month/year come from start_time.
(chat_id, car_plate, start_time) is unique: the backstop for the duplicate check.
"""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Index, UniqueConstraint
from app.database import Base


class ParkingSession(Base):
    __tablename__ = "parking_sessions"
    __table_args__ = (
        UniqueConstraint("chat_id", "car_plate", "start_time",
                         name="uq_parking_sessions_chat_plate_start"),
        Index("ix_parking_sessions_chat_month_year", "chat_id", "year", "month"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(BigInteger, nullable=False, index=True)
    user_id = Column(BigInteger, nullable=False)
    username = Column(String(100))
    visitor_name = Column(String(200), nullable=False, default="Unknown")
    car_plate = Column(String(50), nullable=False)
    start_time = Column(DateTime, nullable=False)     # naive local time
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    day_minutes = Column(Integer, nullable=False, default=0)    # 08:00–24:00
    night_minutes = Column(Integer, nullable=False, default=0)  # 00:00–08:00
    confidence = Column(String(10))                   # high | medium | low
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<ParkingSession {self.id} chat={self.chat_id} plate={self.car_plate} start={self.start_time}>"
