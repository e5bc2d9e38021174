from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

# Same-day wall-clock times are anchored to this date before subtracting.
REFERENCE_DATE = date(2000, 1, 1)
TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def today_in(tz: str | None) -> date:
    """Return the current date in ``tz`` (local date when ``tz`` is empty)."""
    if tz:
        return datetime.now(ZoneInfo(tz)).date()
    return date.today()


def parse_day(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) wall-clock time."""
    cleaned = (value or "").strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"invalid time: {value!r}")


def compute_hours(start_time: str, end_time: str) -> float:
    """Fractional hours between two same-day clock times.

    The result is negative when ``end_time`` is earlier than ``start_time``;
    rejecting that is left to the caller.
    """
    start = datetime.combine(REFERENCE_DATE, parse_clock(start_time))
    end = datetime.combine(REFERENCE_DATE, parse_clock(end_time))
    return (end - start).total_seconds() / 3600


def week_start(reference: date) -> date:
    """Monday on or before ``reference``."""
    return reference - timedelta(days=reference.weekday())


def week_end(reference: date) -> date:
    """Sunday six days after :func:`week_start`."""
    return week_start(reference) + timedelta(days=6)


def week_days(reference: date) -> list[date]:
    start = week_start(reference)
    return [start + timedelta(days=offset) for offset in range(7)]


def shift_weeks(reference: date, weeks: int) -> date:
    return reference + timedelta(days=7 * weeks)
