"""SLA instance state and the audit events derived from a ticket timeline."""

from __future__ import annotations

import datetime as dt
import uuid
from collections.abc import Collection, Sequence

from slaclock.accumulator import accumulate
from slaclock.calendars import CalendarResolver
from slaclock.models import (
    Segment,
    SlaEvent,
    SlaEventType,
    SlaInstance,
    SlaInstanceStatus,
    SlaStats,
    TicketStatus,
)

_EVENT_NAMESPACE = uuid.UUID("6f1c7d4e-2b0a-4f5e-9a51-3c8e2d7b9f10")


def instance_status(resolved: bool, breached: bool) -> SlaInstanceStatus:
    """``RUNNING`` until resolution, then ``MET`` or ``BREACHED``."""
    if not resolved:
        return SlaInstanceStatus.RUNNING
    return SlaInstanceStatus.BREACHED if breached else SlaInstanceStatus.MET


def derive_instance(stats: SlaStats, started_at: dt.datetime) -> SlaInstance:
    return SlaInstance(
        ticket_id=stats.ticket_id,
        policy_id=stats.policy_id,
        started_at=started_at,
        resolved_at=stats.resolved_at,
        status=instance_status(stats.resolved_at is not None, stats.breached),
    )


def event_id(
    ticket_id: str, policy_id: str, event_type: SlaEventType, at: dt.datetime
) -> str:
    """Stable id, so re-emitting the same event can be de-duplicated."""
    key = f"{ticket_id}|{policy_id}|{event_type}|{at.astimezone(dt.UTC).isoformat()}"
    return str(uuid.uuid5(_EVENT_NAMESPACE, key))


def build_events(
    stats: SlaStats,
    started_at: dt.datetime,
    segments: Sequence[Segment],
    counted: Collection[TicketStatus],
    paused: Collection[TicketStatus],
    resolver: CalendarResolver,
) -> list[SlaEvent]:
    """Emit the point-in-time events of one SLA evaluation.

    ``SLA_STARTED`` at creation, ``SLA_PAUSED``/``SLA_RESUMED`` whenever the
    timeline enters or leaves a paused status, and ``SLA_MET`` or
    ``SLA_BREACHED`` at resolution. Minute values are those in effect at the
    event instant.
    """

    def make(event_type: SlaEventType, at: dt.datetime) -> SlaEvent:
        first = None
        if stats.first_response_at is not None and stats.first_response_at <= at:
            first = stats.first_response_minutes
        return SlaEvent(
            event_id=event_id(stats.ticket_id, stats.policy_id, event_type, at),
            type=event_type,
            ticket_id=stats.ticket_id,
            policy_id=stats.policy_id,
            at=at,
            first_response_minutes=first,
            resolution_minutes=accumulate(segments, counted, resolver, until=at),
        )

    events = [make(SlaEventType.SLA_STARTED, started_at)]

    was_paused = False
    for segment in segments:
        is_paused = segment.status in paused
        if is_paused and not was_paused:
            events.append(make(SlaEventType.SLA_PAUSED, segment.start))
        elif was_paused and not is_paused:
            events.append(make(SlaEventType.SLA_RESUMED, segment.start))
        was_paused = is_paused

    if stats.resolved_at is not None:
        if was_paused:
            events.append(make(SlaEventType.SLA_RESUMED, stats.resolved_at))
        final = SlaEventType.SLA_BREACHED if stats.breached else SlaEventType.SLA_MET
        events.append(make(final, stats.resolved_at))

    return events
