# utils/date_utils.py
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def localize(timestamp: datetime, tz: tzinfo) -> datetime:
    """
    Return `timestamp` expressed in `tz`.

    Naive timestamps are taken to already be wall-clock time in `tz`.
    """
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=tz)
    return timestamp.astimezone(tz)


def attendance_day(timestamp: datetime, tz: tzinfo) -> date:
    """Calendar day a punch at `timestamp` belongs to."""
    return localize(timestamp, tz).date()


def to_utc(timestamp: datetime, tz: tzinfo) -> datetime:
    return localize(timestamp, tz).astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from `start` to `end`, rounded half-up to 2 decimals."""
    seconds = Decimal(str((end - start).total_seconds()))
    hours = (seconds / Decimal(3600)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(hours)
