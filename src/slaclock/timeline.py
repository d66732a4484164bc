"""Split a ticket's status history into typed time segments."""

from __future__ import annotations

import datetime as dt
from collections.abc import Collection, Sequence

from slaclock.errors import InvalidTimelineError
from slaclock.models import Segment, StatusChange, Ticket, TicketStatus


def segment_timeline(
    history: Sequence[StatusChange], horizon: dt.datetime
) -> list[Segment]:
    """Turn ordered status changes into ``(status, start, end)`` segments.

    Each entry runs until the next one; the last runs until ``horizon``.
    Entries are clipped to the horizon, and segments with ``end <= start``
    (duplicate timestamps, or changes after the horizon) are dropped.

    Raises:
        InvalidTimelineError: If the history is empty or goes back in time.
    """
    if not history:
        raise InvalidTimelineError("Status history is empty")

    segments: list[Segment] = []
    for idx, entry in enumerate(history):
        if idx + 1 < len(history):
            following = history[idx + 1].changed_at
            if following < entry.changed_at:
                raise InvalidTimelineError(
                    f"Status history is out of order at entry {idx + 1}: "
                    f"{following.isoformat()} precedes {entry.changed_at.isoformat()}",
                    details={"index": idx + 1},
                )
            end = min(following, horizon)
        else:
            end = horizon
        if end <= entry.changed_at:
            continue
        segments.append(Segment(status=entry.status, start=entry.changed_at, end=end))
    return segments


def ticket_history(ticket: Ticket) -> list[StatusChange]:
    """Return the ticket's history, checking it starts at creation.

    Raises:
        InvalidTimelineError: If the history is empty or its first entry is
            not the creation status at the creation instant.
    """
    if not ticket.history:
        raise InvalidTimelineError(
            f"Ticket '{ticket.id}' has no status history",
            details={"ticket_id": ticket.id},
        )
    first = ticket.history[0]
    if first.changed_at != ticket.created_at:
        raise InvalidTimelineError(
            f"Ticket '{ticket.id}': first status change at "
            f"{first.changed_at.isoformat()} is not the creation instant "
            f"{ticket.created_at.isoformat()}",
            details={"ticket_id": ticket.id},
        )
    return list(ticket.history)


def resolution_instant(
    history: Sequence[StatusChange], terminal: Collection[TicketStatus]
) -> dt.datetime | None:
    """When the ticket last entered a terminal status, if it is still in one.

    A reopened ticket (terminal, then non-terminal again) is unresolved.
    Moving between terminal statuses (``RESOLVED`` to ``CLOSED``) keeps the
    earlier instant.
    """
    if not history or history[-1].status not in terminal:
        return None
    resolved_at = history[-1].changed_at
    for entry in reversed(history):
        if entry.status not in terminal:
            break
        resolved_at = entry.changed_at
    return resolved_at
