"""CLI interface for the SLA engine."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from slaclock.audit import EventLog, export_event_log, read_event_log
from slaclock.batch import recompute
from slaclock.business_time import business_minutes_between
from slaclock.config import LOG_LEVELS, get_settings
from slaclock.engine import SlaEngine
from slaclock.errors import SlaError
from slaclock.loader import RegistryError, clear_cache, load_registry, validate_registry
from slaclock.output import (
    render_batch_report,
    render_calendar_list,
    render_evaluation,
    render_evaluation_json,
    render_event_entries,
    render_minutes,
    render_validation_errors,
)
from slaclock.store import JsonStatsStore

console = Console()

app = typer.Typer(
    name="slaclock",
    help="Business-hours SLA timer: compute, recompute and audit ticket SLAs.",
    no_args_is_help=True,
)

events_app = typer.Typer(help="SLA event log commands.")
app.add_typer(events_app, name="events")

RegistryOption = Annotated[
    Optional[Path], typer.Option("--registry", "-r", help="Path to registry directory.")
]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _parse_instant(value: str, option: str) -> datetime:
    try:
        instant = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"not an ISO-8601 instant: {value}", param_hint=option)
    if instant.tzinfo is None:
        raise typer.BadParameter(
            f"instant must carry a UTC offset: {value}", param_hint=option
        )
    return instant


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Logging level.")
    ] = None,
) -> None:
    try:
        settings = get_settings()
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] Invalid settings: {escape(str(exc))}")
        raise typer.Exit(code=1)
    level = (log_level or settings.log_level).upper()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(
            f"unknown log level '{log_level}', expected one of {', '.join(LOG_LEVELS)}",
            param_hint="--log-level",
        )
    configure_logging(level)


@app.command("compute")
def compute_cmd(
    ticket_id: Annotated[str, typer.Argument(help="Ticket ID to evaluate.")],
    registry: RegistryOption = None,
    now: Annotated[
        Optional[str], typer.Option("--now", help="Horizon for open tickets (ISO-8601).")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
) -> None:
    """Compute SLA stats for one ticket."""
    settings = get_settings()
    horizon = _parse_instant(now, "--now") if now else None
    try:
        clear_cache()
        reg = load_registry(registry or settings.registry_path)
        ticket = reg.get_ticket(ticket_id)
        if ticket is None:
            available = ", ".join(sorted(reg.tickets.keys()))
            raise RegistryError(
                f"Ticket '{ticket_id}' not found. Available tickets: {available}"
            )
        policy = reg.select_policy(ticket)
        evaluation = SlaEngine().evaluate(
            ticket, policy, reg.calendar_for(policy), now=horizon
        )
        EventLog(settings.event_log_path, settings.events_enabled).emit(evaluation.events)
        if as_json:
            render_evaluation_json(evaluation)
        else:
            render_evaluation(evaluation, policy)
    except (RegistryError, SlaError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


@app.command("recompute")
def recompute_cmd(
    registry: RegistryOption = None,
    team: Annotated[Optional[str], typer.Option("--team", help="Only this team.")] = None,
    category: Annotated[
        Optional[str], typer.Option("--category", help="Only this category.")
    ] = None,
    since: Annotated[
        Optional[str], typer.Option("--since", help="Created at or after (ISO-8601).")
    ] = None,
    until: Annotated[
        Optional[str], typer.Option("--until", help="Created at or before (ISO-8601).")
    ] = None,
    workers: Annotated[
        Optional[int], typer.Option("--workers", "-w", min=1, help="Worker threads.")
    ] = None,
    now: Annotated[
        Optional[str], typer.Option("--now", help="Horizon for open tickets (ISO-8601).")
    ] = None,
    stats_path: Annotated[
        Optional[Path], typer.Option("--stats", help="Stats JSON file to upsert into.")
    ] = None,
) -> None:
    """Recompute SLA stats from scratch for a filtered set of tickets."""
    settings = get_settings()
    since_at = _parse_instant(since, "--since") if since else None
    until_at = _parse_instant(until, "--until") if until else None
    horizon = _parse_instant(now, "--now") if now else None
    try:
        clear_cache()
        reg = load_registry(registry or settings.registry_path)
    except RegistryError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    tickets = reg.filter_tickets(
        team_id=team, category_id=category, since=since_at, until=until_at
    )
    report = recompute(
        tickets,
        reg,
        store=JsonStatsStore(stats_path or settings.stats_path),
        sink=EventLog(settings.event_log_path, settings.events_enabled),
        workers=workers or settings.workers,
        now=horizon,
    )
    render_batch_report(report)


@app.command("minutes")
def minutes_cmd(
    start: Annotated[str, typer.Argument(help="Start instant (ISO-8601).")],
    end: Annotated[str, typer.Argument(help="End instant (ISO-8601).")],
    calendar_id: Annotated[
        Optional[str], typer.Option("--calendar", "-c", help="Calendar ID.")
    ] = None,
    registry: RegistryOption = None,
) -> None:
    """Count business minutes between two instants."""
    start_at = _parse_instant(start, "START")
    end_at = _parse_instant(end, "END")
    try:
        reg = load_registry(registry or get_settings().registry_path)
        if calendar_id is None:
            calendar = reg.default_calendar()
        else:
            calendar = reg.get_calendar(calendar_id)
            if calendar is None:
                available = ", ".join(sorted(reg.calendars.keys()))
                raise RegistryError(
                    f"Calendar '{calendar_id}' not found. Available calendars: {available}"
                )
        render_minutes(business_minutes_between(start_at, end_at, calendar), calendar)
    except (RegistryError, SlaError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


@app.command("calendars")
def calendars_cmd(
    registry: RegistryOption = None,
) -> None:
    """List business calendars."""
    try:
        reg = load_registry(registry or get_settings().registry_path)
        render_calendar_list(list(reg.calendars.values()))
    except RegistryError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


@app.command("validate")
def validate_cmd(
    registry: RegistryOption = None,
) -> None:
    """Validate calendars, policies and tickets in the registry."""
    try:
        reg = load_registry(registry or get_settings().registry_path)
        errors = validate_registry(reg)
        render_validation_errors(errors)
        if errors:
            raise typer.Exit(code=1)
    except RegistryError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


@events_app.command("show")
def events_show(
    path: Annotated[
        Optional[Path], typer.Option("--path", help="Path to the event log file.")
    ] = None,
    unique: Annotated[
        bool, typer.Option("--unique", help="Drop repeated event ids.")
    ] = False,
) -> None:
    """Show SLA event log entries."""
    entries = read_event_log(audit_path=path or get_settings().event_log_path, unique=unique)
    render_event_entries(entries)


@events_app.command("export")
def events_export(
    fmt: Annotated[
        str, typer.Option("--format", "-f", help="Export format: json or csv.")
    ] = "json",
    path: Annotated[
        Optional[Path], typer.Option("--path", help="Path to the event log file.")
    ] = None,
) -> None:
    """Export SLA event log entries in JSON or CSV format."""
    entries = read_event_log(audit_path=path or get_settings().event_log_path, unique=True)
    if not entries:
        console.print("[dim]No SLA events to export.[/dim]")
        raise typer.Exit(code=0)
    typer.echo(export_event_log(entries, fmt=fmt))
