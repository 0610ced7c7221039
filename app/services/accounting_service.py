# app/services/accounting_service.py
"""
Session accounting engine.

record_submission() takes a successful extraction and:
  1. truncates start/end to whole minutes and rejects end < start
  2. checks for a duplicate (chat, plate, start)
  3. splits the interval into day/night minutes
  4. persists session + monthly total through the record store
  5. returns the persisted session and the fresh current-month total

Exactly one store mutation on success, none on duplicate or validation failure.
Store failures come back as Outcome(FAILED); nothing is raised to the caller.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from app.config import settings
from app.exceptions import DuplicateSessionError, PersistenceError
from app.models.parking_session import ParkingSession
from app.services.day_night import split_day_night
from app.services.extraction_service import ExtractionSuccess
from app.services.record_store import MonthTotals, RecordStore
from app.utils.logger import get_logger

logger = get_logger(__name__)


class OutcomeStatus(str, Enum):
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class Submitter:
    user_id: int
    username: Optional[str] = None


@dataclass
class Outcome:
    status: OutcomeStatus
    car_plate: str
    start_time: datetime
    session: Optional[ParkingSession] = None
    totals: Optional[MonthTotals] = None
    error: Optional[str] = None


def _whole_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


class AccountingEngine:
    def __init__(self, store: RecordStore, day_start_hour: int = None):
        self.store = store
        self.day_start_hour = day_start_hour if day_start_hour is not None else settings.DAY_START_HOUR

    def record_submission(self, chat_id: int, submitter: Submitter,
                          extraction: ExtractionSuccess) -> Outcome:
        plate = extraction.car_plate
        start = _whole_minute(extraction.start_time)
        end = _whole_minute(extraction.end_time)

        if end < start:
            logger.warning(f"[ACCOUNTING] chat={chat_id} plate={plate} rejected: end {end} before start {start}")
            return Outcome(OutcomeStatus.FAILED, plate, start, error="end time is before start time")

        try:
            if self.store.is_duplicate(chat_id, plate, start):
                logger.info(f"[ACCOUNTING] chat={chat_id} plate={plate} start={start} duplicate, skipped")
                return Outcome(OutcomeStatus.DUPLICATE, plate, start)

            split = split_day_night(start, end, self.day_start_hour)
            session = self.store.add_session(
                chat_id=chat_id,
                user_id=submitter.user_id,
                username=submitter.username,
                visitor_name=extraction.visitor_name,
                car_plate=plate,
                start_time=start,
                end_time=end,
                day_minutes=split.day_minutes,
                night_minutes=split.night_minutes,
                confidence=extraction.confidence,
            )
            totals = self.store.get_current_month_total(chat_id)
        except DuplicateSessionError:
            logger.info(f"[ACCOUNTING] chat={chat_id} plate={plate} start={start} lost insert race, duplicate")
            return Outcome(OutcomeStatus.DUPLICATE, plate, start)
        except PersistenceError as e:
            logger.error(f"[ACCOUNTING] chat={chat_id} plate={plate} persist failed: {e}")
            return Outcome(OutcomeStatus.FAILED, plate, start, error="could not save the session")

        logger.info(
            f"[ACCOUNTING] chat={chat_id} plate={plate} recorded {split.total_minutes}m "
            f"(day={split.day_minutes} night={split.night_minutes}); month total={totals.total_minutes}m"
        )
        return Outcome(OutcomeStatus.RECORDED, plate, start, session=session, totals=totals)
