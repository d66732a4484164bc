"""Shared fixtures: calendars, policies and a ticket builder."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from slaclock.loader import clear_cache
from slaclock.models import (
    BusinessCalendar,
    DaySchedule,
    SlaPolicy,
    StatusChange,
    Ticket,
    TicketStatus,
)

REGISTRY_PATH = Path(__file__).parent.parent / "registry"

WORKWEEK = {
    "monday": DaySchedule(open="09:00", close="18:00"),
    "tuesday": DaySchedule(open="09:00", close="18:00"),
    "wednesday": DaySchedule(open="09:00", close="18:00"),
    "thursday": DaySchedule(open="09:00", close="18:00"),
    "friday": DaySchedule(open="09:00", close="18:00"),
    "saturday": DaySchedule(enabled=False),
    "sunday": DaySchedule(enabled=False),
}


def at(value: str) -> datetime:
    """Parse an ISO-8601 instant; a trailing ``Z`` means UTC."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def make_ticket(
    *changes: tuple[TicketStatus, str],
    ticket_id: str = "T-1",
    first_response_at: str | None = None,
    **fields,
) -> Ticket:
    history = [StatusChange(status=s, changed_at=at(t)) for s, t in changes]
    return Ticket(
        id=ticket_id,
        created_at=history[0].changed_at if history else at("2024-01-15T09:00:00Z"),
        first_response_at=at(first_response_at) if first_response_at else None,
        history=history,
        **fields,
    )


@pytest.fixture(autouse=True)
def _clear_registry_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def utc_calendar() -> BusinessCalendar:
    """Monday to Friday, 09:00-18:00 UTC, no holidays."""
    return BusinessCalendar(id="ops-utc", name="Ops", timezone="UTC", schedule=WORKWEEK)


@pytest.fixture
def sao_paulo_calendar() -> BusinessCalendar:
    return BusinessCalendar(
        id="sp", name="Sao Paulo", timezone="America/Sao_Paulo", schedule=WORKWEEK
    )


@pytest.fixture
def policy() -> SlaPolicy:
    return SlaPolicy(
        id="standard",
        name="Standard",
        target_first_response_minutes=60,
        target_resolution_minutes=240,
        calendar_id="ops-utc",
    )
