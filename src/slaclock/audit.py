"""Audit trail for SLA events (JSONL)."""

from __future__ import annotations

import csv
import getpass
import io
import json
import socket
import threading
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from slaclock.models import SlaEvent

DEFAULT_EVENT_LOG_PATH = Path("./audit_logs/sla_events.jsonl")


def _get_user() -> str:
    """Return the current username, or 'unknown' on failure."""
    try:
        return getpass.getuser()
    except Exception:
        return "unknown"


def _get_hostname() -> str:
    """Return the current hostname, or 'unknown' on failure."""
    try:
        return socket.gethostname()
    except Exception:
        return "unknown"


class EventLog:
    """Append-only JSONL sink for SLA events.

    Events carry a stable ``event_id``; re-running a computation appends the
    same ids again and readers de-duplicate with ``unique=True``.
    """

    def __init__(self, path: Path = DEFAULT_EVENT_LOG_PATH, enabled: bool = True) -> None:
        self.path = path
        self.enabled = enabled
        self._lock = threading.Lock()

    def emit(self, events: Iterable[SlaEvent]) -> int:
        """Append events to the log and return how many were written."""
        if not self.enabled:
            return 0

        recorded_at = datetime.now(UTC).isoformat()
        lines = []
        for event in events:
            entry = event.model_dump(mode="json")
            entry["recorded_at"] = recorded_at
            entry["user"] = _get_user()
            entry["hostname"] = _get_hostname()
            lines.append(json.dumps(entry) + "\n")
        if not lines:
            return 0

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.writelines(lines)
        return len(lines)


def read_event_log(audit_path: Path | None = None, unique: bool = False) -> list[dict]:
    """Read all entries from a JSONL event log file.

    Args:
        audit_path: Path to the log file. Defaults to ``./audit_logs/sla_events.jsonl``.
        unique: Keep only the first entry for each ``event_id``.

    Returns:
        A list of event dictionaries.
    """
    if audit_path is None:
        audit_path = DEFAULT_EVENT_LOG_PATH

    if not audit_path.is_file():
        return []

    entries: list[dict] = []
    seen: set[str] = set()
    with open(audit_path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            entry = json.loads(line)
            if unique:
                if entry.get("event_id") in seen:
                    continue
                seen.add(entry.get("event_id"))
            entries.append(entry)
    return entries


def export_event_log(entries: list[dict], fmt: str = "json") -> str:
    """Export event entries to a string in the given format.

    Args:
        entries: List of event dictionaries.
        fmt: Output format, ``"json"``, ``"csv"``, or anything else for JSONL.

    Returns:
        The formatted string.
    """
    if fmt == "json":
        return json.dumps(entries, indent=2)

    if fmt == "csv":
        if not entries:
            return ""
        # Union of keys, in first-seen order.
        fieldnames = list(dict.fromkeys(key for entry in entries for key in entry))
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(entries)
        return output.getvalue()

    return "\n".join(json.dumps(e) for e in entries)
