from datetime import datetime, time, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def civil_time(now: datetime, utc_offset_minutes: int) -> datetime:
    return ensure_utc(now).astimezone(timezone(timedelta(minutes=utc_offset_minutes)))


def in_hour_window(moment: time, start_hour: int, end_hour: int) -> bool:
    """Half-open [start, end) check that wraps past midnight when start > end."""
    start = time(start_hour % 24)
    end = time(end_hour % 24)
    if start == end:
        return False
    if start < end:
        return start <= moment < end
    return moment >= start or moment < end
