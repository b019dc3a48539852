# app/utils/time_utils.py
"""Minute-of-day and half-open interval helpers shared by the scheduling services"""
import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

HHMM_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):([0-5][0-9])$")

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" (00:00 - 23:59) to minutes since midnight"""
    match = HHMM_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM (00:00 - 23:59)")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_hhmm(minutes: int) -> str:
    """Convert minutes since midnight to HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def at_minute(day: date, minutes: int) -> datetime:
    """Naive local datetime for a minute-of-day on the given date"""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) for a calendar date"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """True if [a_start, a_end) and [b_start, b_end) share any instant"""
    return a_start < b_end and b_start < a_end


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's length"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def utcnow() -> datetime:
    """Naive UTC now; every stored timestamp follows the naive convention"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
