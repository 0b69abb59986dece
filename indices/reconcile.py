"""Missing-range detection over UTC calendar days."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from datetime import date, datetime

from .days import enumerate_days, to_utc_day


@dataclass(frozen=True)
class DayRange:
    """Closed range of UTC days, ``start <= end``."""

    start: date
    end: date

    @property
    def days(self) -> list[date]:
        return enumerate_days(self.start, self.end)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1


def reconcile(
    requested_from: date | datetime,
    requested_to: date | datetime,
    cached_days: Collection[date],
) -> list[DayRange]:
    """Return the maximal runs of requested days missing from the cache.

    Ranges come back in day order, never overlap and are never adjacent; an
    empty list means every requested day is cached.
    """

    cached = {to_utc_day(day) for day in cached_days}
    missing: list[DayRange] = []
    run_start: date | None = None
    previous: date | None = None

    for day in enumerate_days(requested_from, requested_to):
        if day not in cached:
            if run_start is None:
                run_start = day
        elif run_start is not None and previous is not None:
            missing.append(DayRange(start=run_start, end=previous))
            run_start = None
        previous = day

    if run_start is not None and previous is not None:
        missing.append(DayRange(start=run_start, end=previous))
    return missing
