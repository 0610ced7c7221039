# app/services/record_store.py
"""
Record store: the only writer of parking_sessions and monthly_totals.

Every public operation opens its own DB session and commits or rolls back as
a unit:
  - add_session inserts the session and bumps its month's total in one
    transaction (update-then-insert on monthly_totals)
  - reset_month / reset_all delete sessions and totals in one transaction
All reads and writes are scoped by chat_id.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import DuplicateSessionError, PersistenceError
from app.models.monthly_total import MonthlyTotal
from app.models.parking_session import ParkingSession
from app.services.duplicate_guard import is_duplicate
from app.utils.clock import local_now
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MonthTotals:
    total_minutes: int = 0
    day_minutes: int = 0
    night_minutes: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_minutes == 0


@dataclass(frozen=True)
class ResetAllSummary:
    sessions_deleted: int
    months_deleted: int
    totals: MonthTotals


class RecordStore:
    def __init__(self, session_factory: Callable[[], Session],
                 clock: Callable[[], datetime] = local_now):
        self._session_factory = session_factory
        self._clock = clock

    def now(self) -> datetime:
        """Wall-clock instant that decides the 'current' month."""
        return self._clock()

    def _current_month(self) -> tuple[int, int]:
        now = self._clock()
        return now.month, now.year

    # ── Writes ────────────────────────────────────────────────────────────

    def add_session(self, chat_id: int, user_id: int, username: Optional[str],
                    visitor_name: Optional[str], car_plate: str,
                    start_time: datetime, end_time: datetime,
                    day_minutes: int, night_minutes: int,
                    confidence: Optional[str] = None) -> ParkingSession:
        """
        Insert a session and increment (or create) its monthly total atomically.
        Raises DuplicateSessionError if the unique key already exists,
        PersistenceError on any other store failure. Nothing is written on failure.
        """
        duration = day_minutes + night_minutes
        month, year = start_time.month, start_time.year
        now = self._clock()

        db = self._session_factory()
        try:
            record = ParkingSession(
                chat_id=chat_id,
                user_id=user_id,
                username=username,
                visitor_name=visitor_name or "Unknown",
                car_plate=car_plate,
                start_time=start_time,
                end_time=end_time,
                duration_minutes=duration,
                day_minutes=day_minutes,
                night_minutes=night_minutes,
                confidence=confidence,
                month=month,
                year=year,
                created_at=now,
            )
            db.add(record)
            db.flush()

            updated = (
                db.query(MonthlyTotal)
                .filter(
                    MonthlyTotal.chat_id == chat_id,
                    MonthlyTotal.month == month,
                    MonthlyTotal.year == year,
                )
                .update(
                    {
                        MonthlyTotal.total_duration_minutes: MonthlyTotal.total_duration_minutes + duration,
                        MonthlyTotal.day_minutes: MonthlyTotal.day_minutes + day_minutes,
                        MonthlyTotal.night_minutes: MonthlyTotal.night_minutes + night_minutes,
                        MonthlyTotal.username: username,
                        MonthlyTotal.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                db.add(MonthlyTotal(
                    chat_id=chat_id,
                    username=username,
                    month=month,
                    year=year,
                    total_duration_minutes=duration,
                    day_minutes=day_minutes,
                    night_minutes=night_minutes,
                    updated_at=now,
                ))

            db.commit()
            db.refresh(record)
            logger.info(
                f"[STORE] chat={chat_id} plate={car_plate} start={start_time} "
                f"+{duration}m (day={day_minutes} night={night_minutes}) → {year}-{month:02d}"
            )
            return record
        except IntegrityError as e:
            db.rollback()
            if is_duplicate(db, chat_id, car_plate, start_time):
                raise DuplicateSessionError(
                    f"Session for {car_plate} at {start_time} already recorded"
                ) from e
            logger.error(f"[STORE] Integrity error adding session: {e}")
            raise PersistenceError(str(e)) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[STORE] Failed to add session for chat={chat_id}: {e}", exc_info=True)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def reset_month(self, chat_id: int) -> Optional[MonthTotals]:
        """
        Delete the current calendar month's sessions and total row.
        Returns the totals removed, or None if there was nothing to reset.
        """
        month, year = self._current_month()
        db = self._session_factory()
        try:
            totals = self._month_totals(db, chat_id, month, year)
            if totals.is_empty:
                return None

            sessions = (
                db.query(ParkingSession)
                .filter(
                    ParkingSession.chat_id == chat_id,
                    ParkingSession.month == month,
                    ParkingSession.year == year,
                )
                .delete(synchronize_session=False)
            )
            db.query(MonthlyTotal).filter(
                MonthlyTotal.chat_id == chat_id,
                MonthlyTotal.month == month,
                MonthlyTotal.year == year,
            ).delete(synchronize_session=False)
            db.commit()

            logger.warning(f"[RESET] chat={chat_id} {year}-{month:02d}: {sessions} sessions deleted")
            return totals
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[RESET] Month reset failed for chat={chat_id}: {e}", exc_info=True)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def reset_all(self, chat_id: int) -> Optional[ResetAllSummary]:
        """Delete every session and monthly total for the chat. None if there was no history."""
        db = self._session_factory()
        try:
            rows = db.query(MonthlyTotal).filter(MonthlyTotal.chat_id == chat_id).all()
            has_sessions = (
                db.query(ParkingSession.id).filter(ParkingSession.chat_id == chat_id).first()
                is not None
            )
            if not rows and not has_sessions:
                return None

            totals = MonthTotals(
                total_minutes=sum(r.total_duration_minutes for r in rows),
                day_minutes=sum(r.day_minutes for r in rows),
                night_minutes=sum(r.night_minutes for r in rows),
            )
            sessions = (
                db.query(ParkingSession)
                .filter(ParkingSession.chat_id == chat_id)
                .delete(synchronize_session=False)
            )
            months = (
                db.query(MonthlyTotal)
                .filter(MonthlyTotal.chat_id == chat_id)
                .delete(synchronize_session=False)
            )
            db.commit()

            logger.warning(f"[RESET] chat={chat_id} full reset: {sessions} sessions, {months} months deleted")
            return ResetAllSummary(sessions_deleted=sessions, months_deleted=months, totals=totals)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[RESET] Full reset failed for chat={chat_id}: {e}", exc_info=True)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    # ── Reads ─────────────────────────────────────────────────────────────

    def is_duplicate(self, chat_id: int, car_plate: str, start_time: datetime) -> bool:
        return self._read(lambda db: is_duplicate(db, chat_id, car_plate, start_time))

    def get_current_month_total(self, chat_id: int) -> MonthTotals:
        month, year = self._current_month()
        return self._read(lambda db: self._month_totals(db, chat_id, month, year))

    def get_monthly_history(self, chat_id: int, limit: int = 12) -> list[MonthlyTotal]:
        return self._read(lambda db: (
            db.query(MonthlyTotal)
            .filter(MonthlyTotal.chat_id == chat_id)
            .order_by(MonthlyTotal.year.desc(), MonthlyTotal.month.desc())
            .limit(limit)
            .all()
        ))

    def get_current_month_sessions(self, chat_id: int) -> list[ParkingSession]:
        month, year = self._current_month()
        return self._read(lambda db: (
            db.query(ParkingSession)
            .filter(
                ParkingSession.chat_id == chat_id,
                ParkingSession.month == month,
                ParkingSession.year == year,
            )
            .order_by(ParkingSession.created_at.desc(), ParkingSession.id.desc())
            .all()
        ))

    def get_recent_sessions(self, chat_id: int, limit: int = 5) -> list[ParkingSession]:
        return self._read(lambda db: (
            db.query(ParkingSession)
            .filter(ParkingSession.chat_id == chat_id)
            .order_by(ParkingSession.created_at.desc(), ParkingSession.id.desc())
            .limit(limit)
            .all()
        ))

    def get_all_sessions_grouped_by_month(self, chat_id: int) -> list[ParkingSession]:
        return self._read(lambda db: (
            db.query(ParkingSession)
            .filter(ParkingSession.chat_id == chat_id)
            .order_by(
                ParkingSession.year.desc(),
                ParkingSession.month.desc(),
                ParkingSession.created_at.desc(),
                ParkingSession.id.desc(),
            )
            .all()
        ))

    @staticmethod
    def _month_totals(db: Session, chat_id: int, month: int, year: int) -> MonthTotals:
        row = (
            db.query(MonthlyTotal)
            .filter(
                MonthlyTotal.chat_id == chat_id,
                MonthlyTotal.month == month,
                MonthlyTotal.year == year,
            )
            .first()
        )
        if not row:
            return MonthTotals()
        return MonthTotals(
            total_minutes=row.total_duration_minutes,
            day_minutes=row.day_minutes,
            night_minutes=row.night_minutes,
        )

    def _read(self, query):
        db = self._session_factory()
        try:
            return query(db)
        except SQLAlchemyError as e:
            logger.error(f"[STORE] Read failed: {e}", exc_info=True)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()
