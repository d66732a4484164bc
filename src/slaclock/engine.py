"""SLA engine entry point: ticket timeline + policy + calendar -> SLA stats."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Collection, Sequence

from slaclock.accumulator import accumulate, first_response_minutes
from slaclock.business_time import calendar_minutes_between
from slaclock.calendars import CalendarResolver
from slaclock.evaluator import evaluate
from slaclock.lifecycle import build_events, derive_instance
from slaclock.models import (
    COUNTED_STATUSES,
    PAUSED_STATUSES,
    TERMINAL_STATUSES,
    BusinessCalendar,
    SlaEvaluation,
    SlaPolicy,
    SlaStats,
    StatusChange,
    Ticket,
    TicketStatus,
)
from slaclock.timeline import resolution_instant, segment_timeline, ticket_history

logger = logging.getLogger(__name__)


class SlaEngine:
    """Pure SLA computation over one ticket at a time.

    The status partition is fixed per engine. Instances hold no mutable state,
    so one engine can be shared by any number of concurrent workers.
    """

    def __init__(
        self,
        counted_statuses: Collection[TicketStatus] = COUNTED_STATUSES,
        paused_statuses: Collection[TicketStatus] = PAUSED_STATUSES,
        terminal_statuses: Collection[TicketStatus] = TERMINAL_STATUSES,
    ) -> None:
        self.counted_statuses = frozenset(counted_statuses)
        self.paused_statuses = frozenset(paused_statuses)
        self.terminal_statuses = frozenset(terminal_statuses)

        overlap = self.counted_statuses & self.paused_statuses
        if overlap:
            names = ", ".join(sorted(overlap))
            raise ValueError(f"Statuses cannot be both counted and paused: {names}")
        if self.terminal_statuses & (self.counted_statuses | self.paused_statuses):
            raise ValueError("Terminal statuses cannot be counted or paused")

    def compute_sla_stats(
        self,
        ticket: Ticket,
        policy: SlaPolicy,
        calendar: BusinessCalendar,
        *,
        timeline: Sequence[StatusChange] | None = None,
        now: dt.datetime | None = None,
    ) -> SlaStats:
        """Compute the SLA stats projection for a ticket.

        Args:
            ticket: The ticket; its ``history`` is the status timeline unless
                ``timeline`` is given.
            policy: The policy resolved for the ticket.
            calendar: The policy's business calendar.
            timeline: Optional status history overriding ``ticket.history``.
            now: Horizon for tickets that are still open (default: current
                time). Pass it explicitly for reproducible results.

        Raises:
            InvalidTimelineError: If the status history is empty or malformed.
        """
        return self.evaluate(
            ticket, policy, calendar, timeline=timeline, now=now
        ).stats

    def evaluate(
        self,
        ticket: Ticket,
        policy: SlaPolicy,
        calendar: BusinessCalendar,
        *,
        timeline: Sequence[StatusChange] | None = None,
        now: dt.datetime | None = None,
    ) -> SlaEvaluation:
        """Compute stats, instance state and events for a ticket."""
        if timeline is not None:
            ticket = ticket.model_copy(update={"history": list(timeline)})
        history = ticket_history(ticket)

        resolver = CalendarResolver(calendar)
        resolved_at = resolution_instant(history, self.terminal_statuses)
        horizon = resolved_at or now or dt.datetime.now(dt.UTC)

        segments = segment_timeline(history, horizon)
        elapsed = accumulate(segments, self.counted_statuses, resolver)
        first = first_response_minutes(
            ticket.created_at, ticket.first_response_at, resolver
        )
        resolution = elapsed if resolved_at is not None else None
        verdict = evaluate(first, resolution, policy)

        stats = SlaStats(
            ticket_id=ticket.id,
            policy_id=policy.id,
            first_response_at=ticket.first_response_at,
            first_response_minutes=first,
            resolved_at=resolved_at,
            resolution_minutes=resolution,
            elapsed_business_minutes=elapsed,
            wall_clock_minutes=calendar_minutes_between(ticket.created_at, horizon),
            breached=verdict.breached,
            breach_reason=verdict.reason,
        )
        instance = derive_instance(stats, ticket.created_at)
        events = build_events(
            stats,
            ticket.created_at,
            segments,
            self.counted_statuses,
            self.paused_statuses,
            resolver,
        )

        logger.debug(
            "Ticket %s under policy %s: first=%s resolution=%s elapsed=%s status=%s",
            ticket.id,
            policy.id,
            first,
            resolution,
            elapsed,
            instance.status,
        )
        return SlaEvaluation(stats=stats, instance=instance, events=events)


_default_engine = SlaEngine()


def compute_sla_stats(
    ticket: Ticket,
    policy: SlaPolicy,
    calendar: BusinessCalendar,
    *,
    timeline: Sequence[StatusChange] | None = None,
    now: dt.datetime | None = None,
) -> SlaStats:
    """Compute SLA stats with the default status partition."""
    return _default_engine.compute_sla_stats(
        ticket, policy, calendar, timeline=timeline, now=now
    )
