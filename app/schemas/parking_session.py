# app/schemas/parking_session.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ParkingSessionOut(BaseModel):
    id: int
    chat_id: int
    user_id: int
    username: Optional[str]
    visitor_name: str
    car_plate: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    day_minutes: int
    night_minutes: int
    confidence: Optional[str]
    month: int
    year: int
    created_at: datetime

    class Config:
        from_attributes = True
