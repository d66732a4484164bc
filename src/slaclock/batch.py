"""Batch SLA recomputation over a pre-filtered ticket list."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel, Field

from slaclock.audit import EventLog
from slaclock.engine import SlaEngine
from slaclock.errors import PolicyNotFoundError, SlaError
from slaclock.loader import Registry
from slaclock.models import SlaEvaluation, SlaInstanceStatus, Ticket
from slaclock.store import StatsStore

logger = logging.getLogger(__name__)


class BatchFailure(BaseModel):
    ticket_id: str
    error_type: str
    message: str


class BatchReport(BaseModel):
    now: dt.datetime
    processed: int = 0
    succeeded: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failures: list[BatchFailure] = Field(default_factory=list)
    breached: int = 0
    by_status: dict[SlaInstanceStatus, int] = Field(default_factory=dict)


def _recompute_one(
    ticket: Ticket,
    registry: Registry,
    engine: SlaEngine,
    now: dt.datetime,
    store: StatsStore | None,
    sink: EventLog | None,
) -> SlaEvaluation:
    policy = registry.select_policy(ticket)
    calendar = registry.calendar_for(policy)
    evaluation = engine.evaluate(ticket, policy, calendar, now=now)
    # Stats go last: a failed emit leaves nothing persisted.
    if sink is not None:
        sink.emit(evaluation.events)
    if store is not None:
        store.upsert(evaluation)
    return evaluation


def recompute(
    tickets: Iterable[Ticket],
    registry: Registry,
    *,
    engine: SlaEngine | None = None,
    store: StatsStore | None = None,
    sink: EventLog | None = None,
    workers: int = 4,
    now: dt.datetime | None = None,
) -> BatchReport:
    """Recompute SLA stats for every ticket from its full timeline.

    Tickets are independent, so they run unordered on a thread pool. A
    ticket that fails is recorded in the report and the batch carries on;
    tickets without an applicable policy are skipped. Results are written
    with an upsert per ticket, so rerunning the batch is safe.

    Args:
        tickets: The tickets to recompute, already filtered by the caller.
        registry: Calendar and policy store, read-only for the batch.
        engine: SLA engine (default status partition if omitted).
        store: Where SLA stats and instances are upserted.
        sink: Where SLA events are emitted.
        workers: Size of the worker pool.
        now: Horizon for open tickets, fixed for the whole batch.

    Returns:
        A ``BatchReport`` summarizing the run.
    """
    engine = engine or SlaEngine()
    now = now or dt.datetime.now(dt.UTC)
    tickets = list(tickets)
    report = BatchReport(now=now, processed=len(tickets))

    logger.info("Recomputing SLA for %d tickets with %d workers", len(tickets), workers)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        # Tickets sharing an id are each collected and reported.
        futures = sorted(
            (
                (
                    ticket.id,
                    pool.submit(
                        _recompute_one, ticket, registry, engine, now, store, sink
                    ),
                )
                for ticket in tickets
            ),
            key=lambda pair: pair[0],
        )

        for ticket_id, future in futures:
            try:
                evaluation = future.result()
            except PolicyNotFoundError as exc:
                logger.info("Ticket %s skipped: %s", ticket_id, exc)
                report.skipped.append(ticket_id)
                continue
            except SlaError as exc:
                logger.warning("Ticket %s failed: %s", ticket_id, exc)
                report.failures.append(
                    BatchFailure(
                        ticket_id=ticket_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )
                )
                continue
            except Exception as exc:
                logger.exception("Ticket %s failed unexpectedly", ticket_id)
                report.failures.append(
                    BatchFailure(
                        ticket_id=ticket_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )
                )
                continue

            report.succeeded.append(ticket_id)
            status = evaluation.instance.status
            report.by_status[status] = report.by_status.get(status, 0) + 1
            if evaluation.stats.breached:
                report.breached += 1
                logger.info(
                    "Ticket %s breached: %s",
                    ticket_id,
                    evaluation.stats.breach_reason,
                )

    logger.info(
        "SLA recompute done: %d ok, %d skipped, %d failed",
        len(report.succeeded),
        len(report.skipped),
        len(report.failures),
    )
    return report
