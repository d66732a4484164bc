"""Sum business minutes over clock-running segments."""

from __future__ import annotations

import datetime as dt
from collections.abc import Collection, Iterable

from slaclock.business_time import business_minutes_between
from slaclock.calendars import CalendarResolver, as_resolver
from slaclock.models import BusinessCalendar, Segment, TicketStatus


def accumulate(
    segments: Iterable[Segment],
    counted_statuses: Collection[TicketStatus],
    calendar: BusinessCalendar | CalendarResolver,
    until: dt.datetime | None = None,
) -> int:
    """Business minutes spent in counted statuses.

    Segments in any other status (paused, terminal) contribute nothing,
    whatever their length. With ``until`` set, segments are cut off at that
    instant, which gives the running total at a point in the timeline.
    """
    resolver = as_resolver(calendar)
    total = 0
    for segment in segments:
        if segment.status not in counted_statuses:
            continue
        end = segment.end if until is None else min(segment.end, until)
        total += business_minutes_between(segment.start, end, resolver)
    return total


def first_response_minutes(
    created_at: dt.datetime,
    first_response_at: dt.datetime | None,
    calendar: BusinessCalendar | CalendarResolver,
) -> int | None:
    """Business minutes from creation to the first response.

    This is plain elapsed business time: waiting statuses before the first
    response are NOT excluded, unlike the resolution total.
    """
    if first_response_at is None:
        return None
    return business_minutes_between(created_at, first_response_at, calendar)
