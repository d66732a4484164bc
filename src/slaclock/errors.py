"""Exceptions raised by the SLA engine and its collaborators."""

from __future__ import annotations


class SlaError(Exception):
    """Base exception for all SLA computation errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidTimelineError(SlaError):
    """The ticket's status history is empty or malformed."""


class InvalidCalendarError(SlaError):
    """A calendar definition cannot be saved (bad hours or time zone)."""


class PolicyNotFoundError(SlaError):
    """No SLA policy applies to the ticket."""


class CalendarNotFoundError(SlaError):
    """A referenced business calendar does not exist."""
