"""UTC calendar-day helpers.

Every cache key and range comparison in this app is a ``date`` in UTC.
Wall-clock datetimes are truncated here and nowhere else.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta

ONE_DAY = timedelta(days=1)


def to_utc_day(value: date | datetime) -> date:
    """Truncate a timestamp to its UTC calendar day.

    Aware datetimes are converted to UTC first; naive datetimes are taken to
    already be UTC. Plain dates pass through unchanged.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


def enumerate_days(
    start: date | datetime, end: date | datetime
) -> list[date]:
    """Return every UTC day from ``start`` to ``end`` inclusive, in order."""

    cursor = to_utc_day(start)
    last = to_utc_day(end)
    days: list[date] = []
    while cursor <= last:
        days.append(cursor)
        cursor = cursor + ONE_DAY
    return days


def day_number(day: date | datetime) -> int:
    return to_utc_day(day).toordinal()


def day_bounds_utc(day: date | datetime) -> tuple[datetime, datetime]:
    """Return ``[00:00Z, next 00:00Z)`` for the UTC day containing ``day``."""

    start = datetime.combine(to_utc_day(day), time.min).replace(tzinfo=UTC)
    return start, start + ONE_DAY


def isoformat_utc(dt: datetime) -> str:
    """Return ``YYYY-MM-DDTHH:MM:SSZ`` for an aware or naive-UTC datetime."""

    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.replace(tzinfo=None, microsecond=0).isoformat() + "Z"
