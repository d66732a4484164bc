"""Tests for batch SLA recomputation."""

from __future__ import annotations

from pathlib import Path

from conftest import REGISTRY_PATH, at, make_ticket
from slaclock.audit import EventLog, read_event_log
from slaclock.batch import recompute
from slaclock.loader import Registry, load_registry
from slaclock.models import SlaInstanceStatus, SlaPolicy, TicketStatus
from slaclock.store import JsonStatsStore, MemoryStatsStore

NOW = at("2024-01-16T12:00:00Z")


def _sample():
    registry = load_registry(REGISTRY_PATH)
    return registry, list(registry.tickets.values())


class _ExplodingSink:
    def emit(self, events):
        raise RuntimeError("sink unavailable")


def test_recompute_sample_registry():
    registry, tickets = _sample()
    store = MemoryStatsStore()

    report = recompute(tickets, registry, store=store, workers=3, now=NOW)

    assert report.processed == 6
    assert report.succeeded == sorted(t.id for t in tickets)
    assert report.failures == []
    assert report.skipped == []
    assert report.breached == 2
    assert report.by_status == {
        SlaInstanceStatus.MET: 3,
        SlaInstanceStatus.BREACHED: 2,
        SlaInstanceStatus.RUNNING: 1,
    }
    assert len(store) == 6


def test_recompute_uses_fixed_horizon():
    registry, tickets = _sample()
    store = MemoryStatsStore()

    recompute(tickets, registry, store=store, now=NOW)

    stats, instance = store.get("T-1004")
    assert stats.elapsed_business_minutes == 180
    assert stats.resolution_minutes is None
    assert instance.status == SlaInstanceStatus.RUNNING


def test_failing_ticket_does_not_abort_batch(utc_calendar, policy):
    registry = Registry(calendars=[utc_calendar], policies=[policy])
    good = make_ticket(
        (TicketStatus.OPEN, "2024-01-15T09:00:00Z"),
        (TicketStatus.RESOLVED, "2024-01-15T10:00:00Z"),
        ticket_id="T-good",
    )
    bad = make_ticket(ticket_id="T-bad")
    store = MemoryStatsStore()

    report = recompute([bad, good], registry, store=store, now=NOW)

    assert report.succeeded == ["T-good"]
    assert [f.ticket_id for f in report.failures] == ["T-bad"]
    assert report.failures[0].error_type == "InvalidTimelineError"
    assert store.get("T-bad") is None
    assert store.get("T-good") is not None


def test_unexpected_error_is_recorded(utc_calendar, policy):
    registry = Registry(calendars=[utc_calendar], policies=[policy])
    ticket = make_ticket((TicketStatus.OPEN, "2024-01-15T09:00:00Z"))

    report = recompute([ticket], registry, sink=_ExplodingSink(), now=NOW)

    assert report.succeeded == []
    assert report.failures[0].error_type == "RuntimeError"
    assert report.failures[0].message == "sink unavailable"


def test_failed_emit_persists_nothing(utc_calendar, policy):
    registry = Registry(calendars=[utc_calendar], policies=[policy])
    ticket = make_ticket((TicketStatus.OPEN, "2024-01-15T09:00:00Z"))
    store = MemoryStatsStore()

    report = recompute([ticket], registry, store=store, sink=_ExplodingSink(), now=NOW)

    assert [f.ticket_id for f in report.failures] == ["T-1"]
    assert store.get("T-1") is None
    assert len(store) == 0


def test_tickets_sharing_an_id_are_each_reported(utc_calendar, policy):
    registry = Registry(calendars=[utc_calendar], policies=[policy])
    bad = make_ticket(ticket_id="T-x")
    good = make_ticket(
        (TicketStatus.OPEN, "2024-01-15T09:00:00Z"),
        (TicketStatus.RESOLVED, "2024-01-15T10:00:00Z"),
        ticket_id="T-x",
    )

    report = recompute([bad, good], registry, now=NOW)

    assert report.processed == 2
    assert report.succeeded == ["T-x"]
    assert [f.ticket_id for f in report.failures] == ["T-x"]
    assert report.failures[0].error_type == "InvalidTimelineError"


def test_ticket_without_policy_is_skipped(utc_calendar):
    inactive = SlaPolicy(
        id="off", name="Off", target_resolution_minutes=60, active=False
    )
    registry = Registry(calendars=[utc_calendar], policies=[inactive])
    ticket = make_ticket((TicketStatus.OPEN, "2024-01-15T09:00:00Z"))

    report = recompute([ticket], registry, now=NOW)

    assert report.skipped == ["T-1"]
    assert report.failures == []
    assert report.succeeded == []


def test_rerun_is_idempotent(tmp_path: Path):
    registry, tickets = _sample()
    stats_path = tmp_path / "stats.json"
    store = JsonStatsStore(stats_path)

    first = recompute(tickets, registry, store=store, workers=4, now=NOW)
    snapshot = stats_path.read_text()
    second = recompute(tickets, registry, store=store, workers=1, now=NOW)

    assert stats_path.read_text() == snapshot
    assert first.model_dump(exclude={"now"}) == second.model_dump(exclude={"now"})


def test_events_are_emitted_per_ticket(tmp_path: Path):
    registry, _ = _sample()
    log_path = tmp_path / "events.jsonl"
    ticket = registry.get_ticket("T-1003")

    recompute([ticket], registry, sink=EventLog(log_path), now=NOW)
    recompute([ticket], registry, sink=EventLog(log_path), now=NOW)

    events = read_event_log(log_path, unique=True)
    assert [e["type"] for e in events] == [
        "SLA_STARTED",
        "SLA_PAUSED",
        "SLA_RESUMED",
        "SLA_MET",
    ]
    assert len(read_event_log(log_path)) == 8
