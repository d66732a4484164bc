"""SLA stats and instance persistence, upserted by ticket id."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Protocol

from slaclock.models import SlaEvaluation, SlaInstance, SlaStats


class StatsStore(Protocol):
    def upsert(self, evaluation: SlaEvaluation) -> None: ...

    def get(self, ticket_id: str) -> tuple[SlaStats, SlaInstance] | None: ...


class MemoryStatsStore:
    """In-process store, mostly for tests and one-off CLI runs."""

    def __init__(self) -> None:
        self._rows: dict[str, tuple[SlaStats, SlaInstance]] = {}
        self._lock = threading.Lock()

    def upsert(self, evaluation: SlaEvaluation) -> None:
        with self._lock:
            self._rows[evaluation.stats.ticket_id] = (
                evaluation.stats,
                evaluation.instance,
            )

    def get(self, ticket_id: str) -> tuple[SlaStats, SlaInstance] | None:
        with self._lock:
            return self._rows.get(ticket_id)

    def __len__(self) -> int:
        return len(self._rows)


class JsonStatsStore:
    """JSON document keyed by ticket id.

    Every write replaces the ticket's row and rewrites the file atomically,
    so repeating a write leaves the document unchanged.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict[str, dict]:
        if not self.path.is_file():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def _write(self, rows: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(rows, f, indent=2, sort_keys=True)
        os.replace(tmp, self.path)

    def upsert(self, evaluation: SlaEvaluation) -> None:
        row = {
            "stats": evaluation.stats.model_dump(mode="json"),
            "instance": evaluation.instance.model_dump(mode="json"),
        }
        with self._lock:
            rows = self._read()
            rows[evaluation.stats.ticket_id] = row
            self._write(rows)

    def get(self, ticket_id: str) -> tuple[SlaStats, SlaInstance] | None:
        with self._lock:
            row = self._read().get(ticket_id)
        if row is None:
            return None
        return (
            SlaStats.model_validate(row["stats"]),
            SlaInstance.model_validate(row["instance"]),
        )

    def all(self) -> dict[str, tuple[SlaStats, SlaInstance]]:
        with self._lock:
            rows = self._read()
        return {
            ticket_id: (
                SlaStats.model_validate(row["stats"]),
                SlaInstance.model_validate(row["instance"]),
            )
            for ticket_id, row in rows.items()
        }
