# app/routers/chats.py
"""Read-only views of a chat's parking totals, for dashboards and debugging."""

from fastapi import APIRouter, Depends, Request
from app.schemas.monthly_total import CurrentMonthOut, MonthlyTotalOut
from app.schemas.parking_session import ParkingSessionOut
from app.services.record_store import RecordStore

router = APIRouter()


def get_store(request: Request) -> RecordStore:
    return request.app.state.bot.store


@router.get("/chats/{chat_id}/current", response_model=CurrentMonthOut,
            summary="This month's totals and sessions")
def get_current_month(chat_id: int, store: RecordStore = Depends(get_store)):
    now = store.now()
    totals = store.get_current_month_total(chat_id)
    return CurrentMonthOut(
        chat_id=chat_id,
        month=now.month,
        year=now.year,
        total_minutes=totals.total_minutes,
        day_minutes=totals.day_minutes,
        night_minutes=totals.night_minutes,
        sessions=[ParkingSessionOut.model_validate(s) for s in store.get_current_month_sessions(chat_id)],
    )


@router.get("/chats/{chat_id}/history", response_model=list[MonthlyTotalOut],
            summary="Monthly totals, most recent first")
def get_history(chat_id: int, limit: int = 12, store: RecordStore = Depends(get_store)):
    return store.get_monthly_history(chat_id, limit=limit)
