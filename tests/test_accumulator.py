"""Tests for business-minute accumulation over segments."""

from __future__ import annotations

from conftest import at
from slaclock.accumulator import accumulate, first_response_minutes
from slaclock.models import COUNTED_STATUSES, Segment, TicketStatus


def _segment(status, start, end):
    return Segment(status=status, start=at(start), end=at(end))


def test_counted_segments_are_summed(utc_calendar):
    segments = [
        _segment(TicketStatus.OPEN, "2024-01-15T09:00:00Z", "2024-01-15T10:00:00Z"),
        _segment(TicketStatus.IN_PROGRESS, "2024-01-15T16:00:00Z", "2024-01-15T18:00:00Z"),
    ]

    assert accumulate(segments, COUNTED_STATUSES, utc_calendar) == 180


def test_paused_segments_contribute_nothing(utc_calendar):
    segments = [
        _segment(TicketStatus.OPEN, "2024-01-15T09:00:00Z", "2024-01-15T10:00:00Z"),
        _segment(TicketStatus.WAITING_REQUESTER, "2024-01-15T10:00:00Z", "2024-01-15T16:00:00Z"),
        _segment(TicketStatus.WAITING_THIRD_PARTY, "2024-01-16T09:00:00Z", "2024-01-19T18:00:00Z"),
    ]

    assert accumulate(segments, COUNTED_STATUSES, utc_calendar) == 60


def test_terminal_segments_contribute_nothing(utc_calendar):
    segments = [
        _segment(TicketStatus.RESOLVED, "2024-01-15T09:00:00Z", "2024-01-15T18:00:00Z"),
    ]

    assert accumulate(segments, COUNTED_STATUSES, utc_calendar) == 0


def test_accumulate_until_cuts_segments(utc_calendar):
    segments = [
        _segment(TicketStatus.OPEN, "2024-01-15T09:00:00Z", "2024-01-15T12:00:00Z"),
        _segment(TicketStatus.IN_PROGRESS, "2024-01-15T12:00:00Z", "2024-01-15T18:00:00Z"),
    ]

    assert accumulate(segments, COUNTED_STATUSES, utc_calendar, until=at("2024-01-15T13:00:00Z")) == 240


def test_custom_counted_set(utc_calendar):
    segments = [
        _segment(TicketStatus.OPEN, "2024-01-15T09:00:00Z", "2024-01-15T10:00:00Z"),
        _segment(TicketStatus.IN_PROGRESS, "2024-01-15T10:00:00Z", "2024-01-15T11:00:00Z"),
    ]

    assert accumulate(segments, {TicketStatus.IN_PROGRESS}, utc_calendar) == 60


def test_first_response_minutes(utc_calendar):
    assert first_response_minutes(
        at("2024-01-12T17:20:00Z"), at("2024-01-15T10:30:00Z"), utc_calendar
    ) == 130


def test_first_response_missing(utc_calendar):
    assert first_response_minutes(at("2024-01-15T09:00:00Z"), None, utc_calendar) is None
