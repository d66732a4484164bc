"""Business-minute arithmetic over a working calendar."""

from __future__ import annotations

import datetime as dt

from slaclock.calendars import CalendarResolver, as_resolver
from slaclock.models import BusinessCalendar

_MINUTE = dt.timedelta(minutes=1)
_DAY = dt.timedelta(days=1)


def business_minutes_between(
    start: dt.datetime,
    end: dt.datetime,
    calendar: BusinessCalendar | CalendarResolver,
) -> int:
    """Count the business minutes elapsed between two instants.

    Walks calendar-local dates from ``start``'s date through ``end``'s date.
    Each business day's work window is intersected with ``[start, end]`` and
    the overlap is floored to whole minutes per day before being summed, so
    long spans carry no accumulated rounding bias.

    Args:
        start: Aware start instant.
        end: Aware end instant.
        calendar: The working calendar, or a resolver already built for it.

    Returns:
        Whole business minutes, ``0`` when ``end <= start``.
    """
    if end <= start:
        return 0

    resolver = as_resolver(calendar)
    current = resolver.local_date(start)
    last = resolver.local_date(end)

    total = 0
    while current <= last:
        window = resolver.work_window(current)
        if window is not None:
            day_start, day_end = window
            effective_start = max(start, day_start)
            effective_end = min(end, day_end)
            if effective_end > effective_start:
                total += (effective_end - effective_start) // _MINUTE
        current += _DAY

    return total


def calendar_minutes_between(start: dt.datetime, end: dt.datetime) -> int:
    """Plain wall-clock minutes between two instants, floored."""
    if end <= start:
        return 0
    return (end - start) // _MINUTE


def business_minutes_to_hours(minutes: int) -> float:
    return round(minutes / 60, 2)


def format_business_minutes(minutes: int) -> str:
    """Human-readable duration: ``45 min``, ``2h`` or ``2h 5min``."""
    if minutes == 0:
        return "0 min"
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins} min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"
