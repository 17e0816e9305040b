"""Date and time utility functions.

Meal timestamps are epoch milliseconds, matching what the web and mobile
clients send. Day boundaries are computed in a configurable timezone.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

UTC_TZ = timezone.utc


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC_TZ)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return to_epoch_ms(utc_now())


def to_epoch_ms(dt: datetime) -> int:
    """
    Convert datetime to epoch milliseconds.

    Args:
        dt: Datetime to convert (assumed UTC if no timezone)

    Returns:
        Milliseconds since the Unix epoch
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC_TZ)
    return int(dt.timestamp() * 1000)


def from_epoch_ms(ms: int, tz: tzinfo = UTC_TZ) -> datetime:
    """Convert epoch milliseconds to an aware datetime in `tz`."""
    return datetime.fromtimestamp(ms / 1000, tz=tz)


def get_zone(name: str) -> tzinfo:
    """Resolve a timezone name, e.g. 'UTC' or 'America/Chicago'."""
    if name.upper() == "UTC":
        return UTC_TZ
    return ZoneInfo(name)


def today(tz: tzinfo) -> date:
    """Current calendar date in `tz`."""
    return utc_now().astimezone(tz).date()


def day_bounds_ms(day: date, tz: tzinfo) -> tuple[int, int]:
    """
    Get the half-open [start, end) bounds of a calendar day.

    Args:
        day: Calendar date
        tz: Timezone the day is interpreted in

    Returns:
        Tuple of (start_ms, end_ms)
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return to_epoch_ms(start), to_epoch_ms(end)


def month_bounds_ms(year: int, month: int, tz: tzinfo) -> tuple[int, int]:
    """Half-open [start, end) bounds of a calendar month."""
    first = date(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    start_ms, _ = day_bounds_ms(first, tz)
    _, end_ms = day_bounds_ms(date(year, month, last_day), tz)
    return start_ms, end_ms


def month_days(year: int, month: int) -> list[date]:
    """All calendar dates in a month."""
    last_day = calendar.monthrange(year, month)[1]
    return [date(year, month, d) for d in range(1, last_day + 1)]
