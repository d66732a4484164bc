"""Pydantic models for calendars, SLA policies, ticket timelines and SLA results."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum

from pydantic import AliasChoices, AwareDatetime, BaseModel, Field, field_validator

TIME_PATTERN = r"^\d{1,2}:\d{2}$"

# Index matches ``date.weekday()`` (Monday == 0).
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class TicketStatus(StrEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_REQUESTER = "WAITING_REQUESTER"
    WAITING_THIRD_PARTY = "WAITING_THIRD_PARTY"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


COUNTED_STATUSES = frozenset({TicketStatus.OPEN, TicketStatus.IN_PROGRESS})
PAUSED_STATUSES = frozenset(
    {TicketStatus.WAITING_REQUESTER, TicketStatus.WAITING_THIRD_PARTY}
)
TERMINAL_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})


class SlaInstanceStatus(StrEnum):
    RUNNING = "RUNNING"
    MET = "MET"
    BREACHED = "BREACHED"


class BreachReason(StrEnum):
    FIRST_RESPONSE_EXCEEDED = "FIRST_RESPONSE_EXCEEDED"
    RESOLUTION_EXCEEDED = "RESOLUTION_EXCEEDED"


class SlaEventType(StrEnum):
    SLA_STARTED = "SLA_STARTED"
    SLA_PAUSED = "SLA_PAUSED"
    SLA_RESUMED = "SLA_RESUMED"
    SLA_MET = "SLA_MET"
    SLA_BREACHED = "SLA_BREACHED"


# ── Calendars ──────────────────────────────────────────────────────────────


class DaySchedule(BaseModel):
    open: str = Field(default="09:00", pattern=TIME_PATTERN)
    close: str = Field(default="18:00", pattern=TIME_PATTERN)
    enabled: bool = True


class CalendarException(BaseModel):
    """A calendar-local date that overrides the weekly schedule.

    Holidays make the date non-working. A non-holiday exception with
    ``open``/``close`` set replaces the date's working window.
    """

    date: dt.date
    is_holiday: bool = Field(
        default=True, validation_alias=AliasChoices("is_holiday", "isHoliday")
    )
    open: str | None = Field(default=None, pattern=TIME_PATTERN)
    close: str | None = Field(default=None, pattern=TIME_PATTERN)
    description: str | None = None


def default_day(weekday: int) -> DaySchedule:
    """Schedule used for a weekday the calendar does not define (8x5)."""
    return DaySchedule(enabled=weekday < 5)


class BusinessCalendar(BaseModel):
    id: str
    name: str = ""
    timezone: str = "America/Sao_Paulo"
    schedule: dict[str, DaySchedule] = Field(default_factory=dict)
    exceptions: list[CalendarException] = Field(default_factory=list)
    is_default: bool = Field(
        default=False, validation_alias=AliasChoices("is_default", "isDefault")
    )

    @field_validator("schedule", mode="before")
    @classmethod
    def _normalize_weekdays(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        normalized = {}
        for key, day in value.items():
            name = str(key).strip().lower()
            if name not in WEEKDAYS:
                raise ValueError(f"unknown weekday '{key}'")
            normalized[name] = day
        return normalized

    def day_schedule(self, weekday: int) -> DaySchedule:
        return self.schedule.get(WEEKDAYS[weekday]) or default_day(weekday)


# ── Policies ───────────────────────────────────────────────────────────────


class PolicySelector(BaseModel):
    team_id: str | None = Field(
        default=None, validation_alias=AliasChoices("team_id", "teamId")
    )
    category_id: str | None = Field(
        default=None, validation_alias=AliasChoices("category_id", "categoryId")
    )
    priority: str | None = None
    ticket_type: str | None = Field(
        default=None, validation_alias=AliasChoices("ticket_type", "ticketType")
    )
    requester_team_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("requester_team_id", "requesterTeamId"),
    )


class SlaPolicy(BaseModel):
    id: str
    name: str = ""
    description: str | None = None
    applies_to: PolicySelector = Field(
        default_factory=PolicySelector,
        validation_alias=AliasChoices("applies_to", "appliesTo"),
    )
    target_first_response_minutes: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "target_first_response_minutes", "targetFirstResponseBusinessMinutes"
        ),
    )
    target_resolution_minutes: int = Field(
        gt=0,
        validation_alias=AliasChoices(
            "target_resolution_minutes", "targetResolutionBusinessMinutes"
        ),
    )
    calendar_id: str | None = Field(
        default=None, validation_alias=AliasChoices("calendar_id", "calendarId")
    )
    active: bool = True


# ── Tickets ────────────────────────────────────────────────────────────────


class StatusChange(BaseModel):
    status: TicketStatus
    changed_at: AwareDatetime


class Ticket(BaseModel):
    id: str
    created_at: AwareDatetime
    first_response_at: AwareDatetime | None = None
    team_id: str | None = None
    category_id: str | None = None
    priority: str | None = None
    ticket_type: str | None = None
    requester_team_id: str | None = None
    history: list[StatusChange] = Field(default_factory=list)

    @property
    def status(self) -> TicketStatus | None:
        return self.history[-1].status if self.history else None


class Segment(BaseModel):
    status: TicketStatus
    start: dt.datetime
    end: dt.datetime


# ── Results ────────────────────────────────────────────────────────────────


class Verdict(BaseModel):
    breached: bool
    reason: BreachReason | None = None


class SlaStats(BaseModel):
    ticket_id: str
    policy_id: str
    first_response_at: dt.datetime | None = None
    first_response_minutes: int | None = None
    resolved_at: dt.datetime | None = None
    resolution_minutes: int | None = None
    elapsed_business_minutes: int = 0
    wall_clock_minutes: int = 0
    breached: bool = False
    breach_reason: BreachReason | None = None


class SlaInstance(BaseModel):
    ticket_id: str
    policy_id: str
    started_at: dt.datetime
    resolved_at: dt.datetime | None = None
    status: SlaInstanceStatus = SlaInstanceStatus.RUNNING


class SlaEvent(BaseModel):
    event_id: str
    type: SlaEventType
    ticket_id: str
    policy_id: str
    at: dt.datetime
    first_response_minutes: int | None = None
    resolution_minutes: int = 0


class SlaEvaluation(BaseModel):
    stats: SlaStats
    instance: SlaInstance
    events: list[SlaEvent]


# ── Registry files ─────────────────────────────────────────────────────────


class CalendarsRegistry(BaseModel):
    calendars: list[BusinessCalendar]


class PoliciesRegistry(BaseModel):
    policies: list[SlaPolicy]


class TicketsRegistry(BaseModel):
    tickets: list[Ticket] = Field(default_factory=list)
