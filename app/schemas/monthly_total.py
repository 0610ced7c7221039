# app/schemas/monthly_total.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.schemas.parking_session import ParkingSessionOut


class MonthlyTotalOut(BaseModel):
    month: int
    year: int
    total_duration_minutes: int
    day_minutes: int
    night_minutes: int
    username: Optional[str]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class CurrentMonthOut(BaseModel):
    chat_id: int
    month: int
    year: int
    total_minutes: int
    day_minutes: int
    night_minutes: int
    sessions: list[ParkingSessionOut]
