"""Calendar resolution: local wall-clock time, working days and work windows."""

from __future__ import annotations

import datetime as dt
import logging
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slaclock.errors import InvalidCalendarError
from slaclock.models import WEEKDAYS, BusinessCalendar, CalendarException

logger = logging.getLogger(__name__)

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?([+-])(\d{1,2})(?::?(\d{2}))?$")


def resolve_zone(name: str) -> dt.tzinfo:
    """Resolve an IANA zone name or a fixed offset such as ``UTC-03:00``."""
    if name.upper() in ("UTC", "GMT", "Z"):
        return dt.UTC
    match = _OFFSET_RE.match(name.strip())
    if match:
        sign, hours, minutes = match.groups()
        offset = dt.timedelta(hours=int(hours), minutes=int(minutes or 0))
        return dt.timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidCalendarError(f"Unknown time zone '{name}'") from exc


def parse_time(value: str) -> int:
    """Parse ``HH:MM`` into minutes since local midnight (``24:00`` allowed)."""
    hour_raw, _, minute_raw = value.partition(":")
    try:
        hour, minute = int(hour_raw), int(minute_raw)
    except ValueError as exc:
        raise InvalidCalendarError(f"Invalid time format: {value}") from exc
    if not (0 <= minute < 60) or not (0 <= hour < 24 or (hour == 24 and minute == 0)):
        raise InvalidCalendarError(f"Invalid time format: {value}")
    return hour * 60 + minute


def check_calendar(calendar: BusinessCalendar) -> None:
    """Reject a calendar that must not be saved.

    Raises:
        InvalidCalendarError: On an unknown time zone, a malformed time, or an
            enabled weekday (or special-hours exception) whose open time is
            not before its close time.
    """
    resolve_zone(calendar.timezone)
    for name, day in calendar.schedule.items():
        if day.enabled and parse_time(day.open) >= parse_time(day.close):
            raise InvalidCalendarError(
                f"Calendar '{calendar.id}': {name} opens at {day.open} "
                f"but closes at {day.close}",
                details={"calendar_id": calendar.id, "weekday": name},
            )
    for exc in calendar.exceptions:
        if exc.is_holiday or exc.open is None or exc.close is None:
            continue
        if parse_time(exc.open) >= parse_time(exc.close):
            raise InvalidCalendarError(
                f"Calendar '{calendar.id}': exception on {exc.date} opens at "
                f"{exc.open} but closes at {exc.close}",
                details={"calendar_id": calendar.id, "date": exc.date.isoformat()},
            )


class CalendarResolver:
    """Answers local-time questions for one calendar.

    Built once per computation; the time zone and exception index are
    resolved up front so day-by-day walks stay cheap.
    """

    def __init__(self, calendar: BusinessCalendar) -> None:
        self.calendar = calendar
        self.zone = resolve_zone(calendar.timezone)
        self._exceptions: dict[dt.date, CalendarException] = {
            e.date: e for e in calendar.exceptions
        }

    def localize(self, instant: dt.datetime) -> dt.datetime:
        return instant.astimezone(self.zone)

    def local_date(self, instant: dt.datetime) -> dt.date:
        return self.localize(instant).date()

    def exception_for(self, day: dt.date) -> CalendarException | None:
        return self._exceptions.get(day)

    def is_business_day(self, day: dt.date) -> bool:
        exc = self._exceptions.get(day)
        if exc is not None:
            if exc.is_holiday:
                return False
            if exc.open is not None and exc.close is not None:
                return True
        return self.calendar.day_schedule(day.weekday()).enabled

    def work_window(self, day: dt.date) -> tuple[dt.datetime, dt.datetime] | None:
        """Return the absolute ``(day_start, day_end)`` of a business day.

        Returns ``None`` for non-business days and for days whose hours are
        unusable (open not before close, unparseable times); such days count
        zero minutes instead of failing the computation.
        """
        if not self.is_business_day(day):
            return None

        exc = self._exceptions.get(day)
        if exc is not None and exc.open is not None and exc.close is not None:
            open_value, close_value = exc.open, exc.close
        else:
            schedule = self.calendar.day_schedule(day.weekday())
            open_value, close_value = schedule.open, schedule.close

        try:
            open_minutes = parse_time(open_value)
            close_minutes = parse_time(close_value)
        except InvalidCalendarError:
            logger.warning(
                "Calendar %s: unparseable hours on %s, counting zero minutes",
                self.calendar.id,
                day,
            )
            return None
        if open_minutes >= close_minutes:
            logger.debug(
                "Calendar %s: %s opens at %s and closes at %s, counting zero minutes",
                self.calendar.id,
                WEEKDAYS[day.weekday()],
                open_value,
                close_value,
            )
            return None

        return self._at(day, open_minutes), self._at(day, close_minutes)

    def _at(self, day: dt.date, minutes: int) -> dt.datetime:
        # Wall-clock arithmetic keeps 24:00 on the following local midnight.
        naive = dt.datetime.combine(day, dt.time()) + dt.timedelta(minutes=minutes)
        return naive.replace(tzinfo=self.zone).astimezone(dt.UTC)


def as_resolver(calendar: BusinessCalendar | CalendarResolver) -> CalendarResolver:
    if isinstance(calendar, CalendarResolver):
        return calendar
    return CalendarResolver(calendar)


def localize(
    instant: dt.datetime, calendar: BusinessCalendar | CalendarResolver
) -> dt.datetime:
    """Map an absolute instant to the calendar's local wall-clock time."""
    return as_resolver(calendar).localize(instant)


def is_business_day(
    day: dt.date, calendar: BusinessCalendar | CalendarResolver
) -> bool:
    """Whether a calendar-local date is a working day.

    The weekday must be enabled and the date must carry no holiday exception.
    A special-hours exception makes the date a working day.
    """
    return as_resolver(calendar).is_business_day(day)
