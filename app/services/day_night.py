# app/services/day_night.py
"""
Day/night split of a parking interval.

Day bucket   = [08:00, 24:00) local clock time
Night bucket = [00:00, 08:00)

The interval is walked segment by segment: from the current instant to the
next bucket boundary (next midnight while in day, next 08:00 while in night),
clamped to the end. Each segment contributes its whole minutes, floored per
segment. Sub-minute remainders are dropped per segment, so inputs with
seconds can total less than the whole-interval minute count.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

DAY_START_HOUR = 8


@dataclass(frozen=True)
class DayNightSplit:
    day_minutes: int
    night_minutes: int

    @property
    def total_minutes(self) -> int:
        return self.day_minutes + self.night_minutes


def _next_boundary(current: datetime, day_start_hour: int) -> datetime:
    if current.hour >= day_start_hour:
        midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=1)
    return current.replace(hour=day_start_hour, minute=0, second=0, microsecond=0)


def split_day_night(start: datetime, end: datetime,
                    day_start_hour: int = DAY_START_HOUR) -> DayNightSplit:
    """Split [start, end) into day and night minutes. Raises ValueError if end < start."""
    if end < start:
        raise ValueError(f"end {end} is before start {start}")

    day_minutes = 0
    night_minutes = 0
    current = start

    while current < end:
        in_day = current.hour >= day_start_hour
        boundary = min(_next_boundary(current, day_start_hour), end)
        minutes = int((boundary - current).total_seconds() // 60)

        if in_day:
            day_minutes += minutes
        else:
            night_minutes += minutes
        current = boundary

    return DayNightSplit(day_minutes=day_minutes, night_minutes=night_minutes)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)
