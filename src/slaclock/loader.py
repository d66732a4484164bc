"""YAML registry loader: calendars, SLA policies and tickets."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from slaclock.calendars import check_calendar
from slaclock.errors import CalendarNotFoundError, InvalidCalendarError, PolicyNotFoundError
from slaclock.models import (
    BusinessCalendar,
    CalendarException,
    CalendarsRegistry,
    PoliciesRegistry,
    SlaPolicy,
    Ticket,
    TicketsRegistry,
)

logger = logging.getLogger(__name__)

_cache: dict[str, Registry] = {}

REQUIRED_FILES = ("calendars.yaml", "policies.yaml")
TICKETS_FILE = "tickets.yaml"

# Specificity weights used when matching a policy to a ticket.
SELECTOR_WEIGHTS = (
    ("team_id", 10),
    ("category_id", 8),
    ("priority", 6),
    ("ticket_type", 4),
    ("requester_team_id", 2),
)

FALLBACK_CALENDAR = BusinessCalendar(
    id="default-8x5",
    name="Default 8x5",
    timezone="America/Sao_Paulo",
    is_default=True,
)


class RegistryError(Exception):
    """Exception raised for errors during registry loading or validation."""


class Registry:
    """Read-mostly store of calendars, policies and tickets for one batch."""

    def __init__(
        self,
        calendars: list[BusinessCalendar],
        policies: list[SlaPolicy],
        tickets: list[Ticket] | None = None,
    ) -> None:
        self.calendars = {c.id: c for c in calendars}
        self.policies = {p.id: p for p in policies}
        self.tickets = {t.id: t for t in tickets or []}

    def get_calendar(self, calendar_id: str) -> BusinessCalendar | None:
        return self.calendars.get(calendar_id)

    def get_policy(self, policy_id: str) -> SlaPolicy | None:
        return self.policies.get(policy_id)

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        return self.tickets.get(ticket_id)

    def default_calendar(self) -> BusinessCalendar:
        """The default calendar, the first one, or the built-in 8x5 calendar."""
        for calendar in self.calendars.values():
            if calendar.is_default:
                return calendar
        if self.calendars:
            return next(iter(self.calendars.values()))
        logger.warning("No business calendar defined, using built-in 8x5 calendar")
        return FALLBACK_CALENDAR

    def calendar_for(self, policy: SlaPolicy) -> BusinessCalendar:
        if policy.calendar_id is None:
            return self.default_calendar()
        calendar = self.calendars.get(policy.calendar_id)
        if calendar is None:
            logger.warning(
                "Policy %s references unknown calendar %s, using default",
                policy.id,
                policy.calendar_id,
            )
            return self.default_calendar()
        return calendar

    def select_policy(self, ticket: Ticket) -> SlaPolicy:
        """Pick the most specific active policy for a ticket.

        Raises:
            PolicyNotFoundError: If no active policy exists.
        """
        best: SlaPolicy | None = None
        best_score = -1
        for policy in self.policies.values():
            if not policy.active:
                continue
            score = 0
            for field, weight in SELECTOR_WEIGHTS:
                wanted = getattr(policy.applies_to, field)
                if wanted is not None and wanted == getattr(ticket, field):
                    score += weight
            if score > best_score:
                best, best_score = policy, score

        if best is None:
            raise PolicyNotFoundError(
                f"No active SLA policy applies to ticket '{ticket.id}'",
                details={"ticket_id": ticket.id},
            )
        return best

    # ── Calendar management ────────────────────────────────────────────────

    def save_calendar(self, calendar: BusinessCalendar) -> BusinessCalendar:
        """Validate and store a calendar, keeping a single default.

        Raises:
            InvalidCalendarError: If the calendar's hours or zone are invalid.
        """
        check_calendar(calendar)
        self.calendars[calendar.id] = calendar
        if calendar.is_default:
            self.set_default_calendar(calendar.id)
        return calendar

    def set_default_calendar(self, calendar_id: str) -> None:
        if calendar_id not in self.calendars:
            raise CalendarNotFoundError(f"Calendar '{calendar_id}' not found")
        for cid, calendar in self.calendars.items():
            is_default = cid == calendar_id
            if calendar.is_default != is_default:
                self.calendars[cid] = calendar.model_copy(update={"is_default": is_default})

    def add_exception(
        self, calendar_id: str, exception: CalendarException
    ) -> BusinessCalendar:
        calendar = self._require_calendar(calendar_id)
        exceptions = [e for e in calendar.exceptions if e.date != exception.date]
        exceptions.append(exception)
        exceptions.sort(key=lambda e: e.date)
        return self.save_calendar(calendar.model_copy(update={"exceptions": exceptions}))

    def remove_exception(self, calendar_id: str, day: dt.date) -> BusinessCalendar:
        calendar = self._require_calendar(calendar_id)
        exceptions = [e for e in calendar.exceptions if e.date != day]
        updated = calendar.model_copy(update={"exceptions": exceptions})
        self.calendars[calendar_id] = updated
        return updated

    def _require_calendar(self, calendar_id: str) -> BusinessCalendar:
        calendar = self.calendars.get(calendar_id)
        if calendar is None:
            raise CalendarNotFoundError(f"Calendar '{calendar_id}' not found")
        return calendar

    # ── Ticket filtering ───────────────────────────────────────────────────

    def filter_tickets(
        self,
        team_id: str | None = None,
        category_id: str | None = None,
        since: dt.datetime | None = None,
        until: dt.datetime | None = None,
    ) -> list[Ticket]:
        """Tickets matching all given filters, by creation instant."""
        selected = []
        for ticket in self.tickets.values():
            if team_id is not None and ticket.team_id != team_id:
                continue
            if category_id is not None and ticket.category_id != category_id:
                continue
            if since is not None and ticket.created_at < since:
                continue
            if until is not None and ticket.created_at > until:
                continue
            selected.append(ticket)
        return selected


def _load_yaml(path: Path, model):
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return model.model_validate(data)
    except yaml.YAMLError as e:
        raise RegistryError(f"Malformed {path.name}: {e}") from e
    except ValidationError as e:
        raise RegistryError(f"Invalid {path.name}: {e}") from e


def load_registry(registry_path: Path = Path("registry")) -> Registry:
    """Load, parse, validate and cache the YAML registry.

    Args:
        registry_path: Directory holding ``calendars.yaml``, ``policies.yaml``
            and optionally ``tickets.yaml``.

    Returns:
        A fully loaded Registry instance.

    Raises:
        RegistryError: If files are missing or validation fails.
    """
    resolved = str(registry_path.resolve())

    if resolved in _cache:
        return _cache[resolved]

    missing = [f for f in REQUIRED_FILES if not (registry_path / f).is_file()]
    if missing:
        raise RegistryError(
            f"Missing registry files in {registry_path}: {', '.join(missing)}"
        )

    calendars = _load_yaml(registry_path / "calendars.yaml", CalendarsRegistry)
    policies = _load_yaml(registry_path / "policies.yaml", PoliciesRegistry)
    tickets_path = registry_path / TICKETS_FILE
    tickets = (
        _load_yaml(tickets_path, TicketsRegistry)
        if tickets_path.is_file()
        else TicketsRegistry()
    )

    registry = Registry(
        calendars=calendars.calendars,
        policies=policies.policies,
        tickets=tickets.tickets,
    )
    logger.debug(
        "Loaded registry %s: %d calendars, %d policies, %d tickets",
        resolved,
        len(registry.calendars),
        len(registry.policies),
        len(registry.tickets),
    )

    _cache[resolved] = registry
    return registry


def clear_cache() -> None:
    """Clear the in-memory registry cache."""
    _cache.clear()


def validate_registry(registry: Registry) -> list[str]:
    """Validate calendars and cross-references within a loaded registry.

    Returns a list of error messages. An empty list means the registry is valid.
    """
    errors: list[str] = []

    for calendar in registry.calendars.values():
        try:
            check_calendar(calendar)
        except InvalidCalendarError as exc:
            errors.append(str(exc))

    defaults = [c.id for c in registry.calendars.values() if c.is_default]
    if len(defaults) > 1:
        errors.append(f"More than one default calendar: {', '.join(defaults)}")

    for policy in registry.policies.values():
        if policy.calendar_id is not None and policy.calendar_id not in registry.calendars:
            errors.append(
                f"Policy '{policy.id}': calendar '{policy.calendar_id}' "
                f"not found in calendars"
            )

    if not any(p.active for p in registry.policies.values()):
        errors.append("No active SLA policy defined")

    for ticket in registry.tickets.values():
        if not ticket.history:
            errors.append(f"Ticket '{ticket.id}': has no status history")

    return errors
