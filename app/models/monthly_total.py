# app/models/monthly_total.py
"""
Monthly totals table.
Running day/night/total minutes per (chat, month, year). Incremented by the
record store in the same transaction as each session insert; deleted (not
zeroed) on reset.
"""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, UniqueConstraint
from app.database import Base


class MonthlyTotal(Base):
    __tablename__ = "monthly_totals"
    __table_args__ = (
        UniqueConstraint("chat_id", "month", "year", name="uq_monthly_totals_chat_month_year"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(BigInteger, nullable=False, index=True)
    username = Column(String(100))          # last submitter, display only
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_duration_minutes = Column(Integer, default=0, nullable=False)
    day_minutes = Column(Integer, default=0, nullable=False)
    night_minutes = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime)

    def __repr__(self):
        return (f"<MonthlyTotal chat={self.chat_id} {self.year}-{self.month:02d} "
                f"total={self.total_duration_minutes}>")
