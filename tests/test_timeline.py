"""Tests for timeline segmentation."""

from __future__ import annotations

import pytest

from conftest import at, make_ticket
from slaclock.errors import InvalidTimelineError
from slaclock.models import TERMINAL_STATUSES, StatusChange, TicketStatus
from slaclock.timeline import resolution_instant, segment_timeline, ticket_history

OPEN = TicketStatus.OPEN
IN_PROGRESS = TicketStatus.IN_PROGRESS
WAITING = TicketStatus.WAITING_REQUESTER
RESOLVED = TicketStatus.RESOLVED
CLOSED = TicketStatus.CLOSED


def _history(*changes):
    return [StatusChange(status=s, changed_at=at(t)) for s, t in changes]


def test_segments_split_at_each_transition():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (WAITING, "2024-01-15T10:00:00Z"),
        (IN_PROGRESS, "2024-01-15T16:00:00Z"),
    )

    segments = segment_timeline(history, at("2024-01-15T18:00:00Z"))

    assert [(s.status, s.start, s.end) for s in segments] == [
        (OPEN, at("2024-01-15T09:00:00Z"), at("2024-01-15T10:00:00Z")),
        (WAITING, at("2024-01-15T10:00:00Z"), at("2024-01-15T16:00:00Z")),
        (IN_PROGRESS, at("2024-01-15T16:00:00Z"), at("2024-01-15T18:00:00Z")),
    ]


def test_duplicate_timestamps_are_dropped():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (IN_PROGRESS, "2024-01-15T09:00:00Z"),
    )

    segments = segment_timeline(history, at("2024-01-15T10:00:00Z"))

    assert len(segments) == 1
    assert segments[0].status == IN_PROGRESS


def test_changes_after_horizon_are_clipped():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (IN_PROGRESS, "2024-01-15T11:00:00Z"),
    )

    segments = segment_timeline(history, at("2024-01-15T10:00:00Z"))

    assert len(segments) == 1
    assert segments[0].end == at("2024-01-15T10:00:00Z")


def test_terminal_segment_at_horizon_is_dropped():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (RESOLVED, "2024-01-15T10:00:00Z"),
    )

    segments = segment_timeline(history, at("2024-01-15T10:00:00Z"))

    assert [s.status for s in segments] == [OPEN]


def test_empty_history_is_rejected():
    with pytest.raises(InvalidTimelineError, match="empty"):
        segment_timeline([], at("2024-01-15T10:00:00Z"))


def test_out_of_order_history_is_rejected():
    history = _history(
        (OPEN, "2024-01-15T10:00:00Z"),
        (IN_PROGRESS, "2024-01-15T09:00:00Z"),
    )

    with pytest.raises(InvalidTimelineError, match="out of order"):
        segment_timeline(history, at("2024-01-15T12:00:00Z"))


def test_ticket_history_requires_entries():
    ticket = make_ticket()

    with pytest.raises(InvalidTimelineError, match="no status history"):
        ticket_history(ticket)


def test_ticket_history_must_start_at_creation():
    ticket = make_ticket((OPEN, "2024-01-15T09:05:00Z")).model_copy(
        update={"created_at": at("2024-01-15T09:00:00Z")}
    )

    with pytest.raises(InvalidTimelineError, match="creation instant"):
        ticket_history(ticket)


# ── resolution_instant ─────────────────────────────────────────────────────


def test_open_ticket_has_no_resolution():
    history = _history((OPEN, "2024-01-15T09:00:00Z"))

    assert resolution_instant(history, TERMINAL_STATUSES) is None


def test_resolved_then_closed_keeps_first_terminal_instant():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (RESOLVED, "2024-01-15T10:00:00Z"),
        (CLOSED, "2024-01-16T10:00:00Z"),
    )

    assert resolution_instant(history, TERMINAL_STATUSES) == at("2024-01-15T10:00:00Z")


def test_reopened_ticket_uses_latest_resolution():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (RESOLVED, "2024-01-15T10:00:00Z"),
        (OPEN, "2024-01-15T11:00:00Z"),
        (RESOLVED, "2024-01-15T12:00:00Z"),
    )

    assert resolution_instant(history, TERMINAL_STATUSES) == at("2024-01-15T12:00:00Z")


def test_reopened_and_still_open_is_unresolved():
    history = _history(
        (OPEN, "2024-01-15T09:00:00Z"),
        (RESOLVED, "2024-01-15T10:00:00Z"),
        (OPEN, "2024-01-15T11:00:00Z"),
    )

    assert resolution_instant(history, TERMINAL_STATUSES) is None
