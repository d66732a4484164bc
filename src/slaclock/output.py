"""Rich output formatting for CLI results."""

from __future__ import annotations

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from slaclock.batch import BatchReport
from slaclock.business_time import format_business_minutes
from slaclock.models import BusinessCalendar, SlaEvaluation, SlaPolicy, WEEKDAYS

console = Console()

STATUS_COLORS: dict[str, str] = {
    "RUNNING": "yellow",
    "MET": "green",
    "BREACHED": "red bold",
}


def _minutes(value: int | None, target: int | None = None) -> Text:
    if value is None:
        return Text("-", style="dim")
    text = format_business_minutes(value)
    if target is None:
        return Text(text)
    style = "red" if value > target else "green"
    return Text(f"{text} / {format_business_minutes(target)}", style=style)


def render_evaluation(evaluation: SlaEvaluation, policy: SlaPolicy) -> None:
    """Render one ticket's SLA stats and events.

    Args:
        evaluation: The computed evaluation.
        policy: The policy the ticket was evaluated against.
    """
    stats = evaluation.stats
    status = evaluation.instance.status
    status_style = STATUS_COLORS.get(status, "white")

    header_text = Text()
    header_text.append(f"SLA: {stats.ticket_id} ")
    header_text.append(f"[{policy.name or policy.id}] ")
    header_text.append(status, style=status_style)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Metric", min_width=22)
    table.add_column("Value", min_width=24)

    table.add_row(
        "First response",
        _minutes(stats.first_response_minutes, policy.target_first_response_minutes),
    )
    table.add_row(
        "Resolution",
        _minutes(stats.resolution_minutes, policy.target_resolution_minutes),
    )
    table.add_row("Business time so far", _minutes(stats.elapsed_business_minutes))
    table.add_row("Wall-clock time", _minutes(stats.wall_clock_minutes))
    table.add_row(
        "Breached",
        Text(
            f"yes ({stats.breach_reason})" if stats.breached else "no",
            style="red" if stats.breached else "green",
        ),
    )

    console.print(Panel(table, title=header_text, border_style="blue"))

    events = Table(title="Events", show_header=True, header_style="bold")
    events.add_column("At")
    events.add_column("Event")
    events.add_column("Business min", justify="right")
    for event in evaluation.events:
        events.add_row(event.at.isoformat(), event.type, str(event.resolution_minutes))
    console.print(events)


def render_evaluation_json(evaluation: SlaEvaluation) -> None:
    """Output the evaluation as formatted JSON."""
    console.print_json(json.dumps(evaluation.model_dump(mode="json")))


def render_batch_report(report: BatchReport) -> None:
    """Render a batch recomputation summary.

    Args:
        report: The report returned by ``recompute``.
    """
    table = Table(title="SLA Recompute", show_header=True, header_style="bold")
    table.add_column("Processed", justify="right")
    table.add_column("OK", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Breached", justify="right")
    for status in STATUS_COLORS:
        table.add_column(status, justify="right")

    table.add_row(
        str(report.processed),
        str(len(report.succeeded)),
        str(len(report.skipped)),
        Text(str(len(report.failures)), style="red" if report.failures else ""),
        str(report.breached),
        *(str(report.by_status.get(status, 0)) for status in STATUS_COLORS),
    )
    console.print(table)

    for failure in report.failures:
        console.print(
            Text(f"  • {failure.ticket_id}: {failure.error_type}: {failure.message}", style="red")
        )


def render_calendar_list(calendars: list[BusinessCalendar]) -> None:
    """Render a table of business calendars, default first."""
    sorted_calendars = sorted(calendars, key=lambda c: (not c.is_default, c.name, c.id))

    table = Table(title="Business Calendars", show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Time zone")
    table.add_column("Working days")
    table.add_column("Exceptions", justify="right")
    table.add_column("Default")

    for calendar in sorted_calendars:
        days = []
        for idx, name in enumerate(WEEKDAYS):
            day = calendar.day_schedule(idx)
            if day.enabled:
                days.append(f"{name[:3]} {day.open}-{day.close}")
        table.add_row(
            calendar.id,
            calendar.name,
            calendar.timezone,
            ", ".join(days) or "-",
            str(len(calendar.exceptions)),
            Text("yes", style="green") if calendar.is_default else "",
        )

    console.print(table)


def render_minutes(minutes: int, calendar: BusinessCalendar) -> None:
    content = Text()
    content.append(f"{minutes}", style="bold")
    content.append(f" business minutes ({format_business_minutes(minutes)})\n")
    content.append(f"  calendar  {calendar.id} ({calendar.timezone})", style="dim")
    console.print(Panel(content, title="Business Time", border_style="cyan"))


def render_validation_errors(errors: list[str]) -> None:
    """Render registry validation results.

    Args:
        errors: List of validation error messages. Empty means success.
    """
    if not errors:
        console.print(
            Text("Registry validation passed, no errors found.", style="green bold")
        )
        return

    console.print(
        Text(f"Validation failed with {len(errors)} error(s):", style="red bold")
    )
    for error in errors:
        console.print(Text(f"  • {error}", style="red"))


def render_event_entries(entries: list[dict]) -> None:
    """Render SLA event log entries as a Rich table."""
    if not entries:
        console.print(Text("No SLA events found.", style="dim"))
        return

    table = Table(title="SLA Events", show_header=True, header_style="bold")
    table.add_column("At")
    table.add_column("Event")
    table.add_column("Ticket")
    table.add_column("Policy")
    table.add_column("First response", justify="right")
    table.add_column("Resolution", justify="right")

    for entry in entries:
        first = entry.get("first_response_minutes")
        table.add_row(
            str(entry.get("at", "")),
            str(entry.get("type", "")),
            str(entry.get("ticket_id", "")),
            str(entry.get("policy_id", "")),
            "-" if first is None else str(first),
            str(entry.get("resolution_minutes", "")),
        )

    console.print(table)
