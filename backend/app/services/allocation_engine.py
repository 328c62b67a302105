"""
allocation_engine.py — Distribute service-ticket billed hours across rate-type buckets.

Covers:
  - Edited tickets: ``edited_hours`` is authoritative, allocated key by key
  - Derived tickets: the ticket total is split across the matching billable
    time entries in proportion to their hours
  - Tickets without matching entries: whole total to shop time (flagged)
  - Revenue per slice = allocated hours × resolved billable rate

Cost is not computed here; pay is owed on clocked hours, see payroll_cost.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.services.rate_resolver import billable_rate_for
from app.services.ticket_dedup import ticket_key
from app.services.timesheet_types import (
    EmployeeRateProfile,
    RateBucket,
    ServiceTicketRecord,
    TimeEntry,
    classify_rate_label,
    coerce_number,
)

SOURCE_EDITED = "edited"
SOURCE_PROPORTIONAL = "proportional"
SOURCE_NO_MATCH = "no_matching_entries"


@dataclass(frozen=True)
class AllocationSlice:
    """One piece of a ticket's billed hours landing in one bucket."""

    date: date
    user_id: str
    bucket: RateBucket
    hours: float
    billable_rate: float
    source: str
    ticket_id: Optional[str] = None
    entry_id: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def revenue(self) -> float:
        return self.hours * self.billable_rate


@dataclass
class AllocationResult:
    slices: List[AllocationSlice] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def extend(self, other: "AllocationResult") -> None:
        self.slices.extend(other.slices)
        self.warnings.extend(other.warnings)


def _ticket_label(ticket: ServiceTicketRecord) -> str:
    day, customer, user = ticket_key(ticket)
    if ticket.id:
        return f"ticket {ticket.id} ({day}, {customer}, {user})"
    return f"ticket ({day}, {customer}, {user})"


def edited_hours_value(value: Any) -> Optional[float]:
    """
    Coerce one ``edited_hours`` value: a number, or a sequence summed together.

    Returns None when the value (or any element of the sequence) is not numeric.
    """
    if isinstance(value, (list, tuple)):
        total = 0.0
        for item in value:
            number = coerce_number(item)
            if number is None:
                return None
            total += max(0.0, number)
        return total
    number = coerce_number(value)
    if number is None:
        return None
    return max(0.0, number)


def matching_entries(
    ticket: ServiceTicketRecord, entries: Iterable[TimeEntry]
) -> List[TimeEntry]:
    """Billable entries of the ticket's employee and day, filtered by the ticket's customer/project when set."""
    matched = []
    for entry in entries:
        if not entry.billable or entry.hours <= 0:
            continue
        if entry.user_id != ticket.user_id or entry.date != ticket.date:
            continue
        if ticket.customer_id is not None and entry.customer_id != ticket.customer_id:
            continue
        if ticket.project_id is not None and entry.project_id != ticket.project_id:
            continue
        matched.append(entry)
    return matched


def _allocate_edited(
    ticket: ServiceTicketRecord, profile: Optional[EmployeeRateProfile]
) -> AllocationResult:
    result = AllocationResult()
    for label, raw in ticket.edited_hours.items():
        hours = edited_hours_value(raw)
        if hours is None:
            result.warnings.append(
                f"{_ticket_label(ticket)}: edited hours for '{label}' are not numeric; skipped"
            )
            continue
        if hours <= 0:
            continue
        bucket = classify_rate_label(label)
        if bucket is RateBucket.INTERNAL:
            result.warnings.append(
                f"{_ticket_label(ticket)}: internal hours on an edited ticket billed as shop time"
            )
            bucket = RateBucket.SHOP_TIME
        elif bucket is None:
            result.warnings.append(
                f"{_ticket_label(ticket)}: unknown rate type '{label}' billed as shop time"
            )
            bucket = RateBucket.SHOP_TIME
        result.slices.append(
            AllocationSlice(
                date=ticket.date,
                user_id=ticket.user_id,
                bucket=bucket,
                hours=hours,
                billable_rate=billable_rate_for(profile, bucket),
                source=SOURCE_EDITED,
                ticket_id=ticket.id,
                project_id=ticket.project_id,
                customer_id=ticket.customer_id,
            )
        )
    return result


def _allocate_proportional(
    ticket: ServiceTicketRecord,
    entries: Sequence[TimeEntry],
    profile: Optional[EmployeeRateProfile],
) -> AllocationResult:
    result = AllocationResult()
    matched = matching_entries(ticket, entries)
    total_entry_hours = sum(e.hours for e in matched)

    if total_entry_hours <= 0:
        if ticket.total_hours <= 0:
            return result
        result.warnings.append(
            f"{_ticket_label(ticket)}: no matching time entries; "
            f"{ticket.total_hours:g} h billed as shop time"
        )
        result.slices.append(
            AllocationSlice(
                date=ticket.date,
                user_id=ticket.user_id,
                bucket=RateBucket.SHOP_TIME,
                hours=ticket.total_hours,
                billable_rate=billable_rate_for(profile, RateBucket.SHOP_TIME),
                source=SOURCE_NO_MATCH,
                ticket_id=ticket.id,
                project_id=ticket.project_id,
                customer_id=ticket.customer_id,
            )
        )
        return result

    # Ticket total is authoritative; entries only supply the rate-type mix
    for entry in matched:
        allocated = ticket.total_hours * (entry.hours / total_entry_hours)
        if allocated <= 0:
            continue
        result.slices.append(
            AllocationSlice(
                date=ticket.date,
                user_id=ticket.user_id,
                bucket=entry.bucket,
                hours=allocated,
                billable_rate=billable_rate_for(profile, entry.bucket, entry.rate),
                source=SOURCE_PROPORTIONAL,
                ticket_id=ticket.id,
                entry_id=entry.id,
                project_id=entry.project_id,
                project_name=entry.project_name,
                customer_id=entry.customer_id,
                customer_name=entry.customer_name,
            )
        )
    return result


def allocate_ticket(
    ticket: ServiceTicketRecord,
    entries: Sequence[TimeEntry],
    profile: Optional[EmployeeRateProfile],
) -> AllocationResult:
    """Allocate one deduplicated ticket; ``entries`` may be any superset of the ticket's day."""
    if ticket.is_edited:
        return _allocate_edited(ticket, profile)
    return _allocate_proportional(ticket, entries, profile)


def allocate_tickets(
    tickets: Iterable[ServiceTicketRecord],
    entries: Iterable[TimeEntry],
    profiles: Mapping[str, EmployeeRateProfile],
) -> AllocationResult:
    """Allocate every (already deduplicated) ticket, preserving ticket order."""
    by_user_day: Dict[Tuple[str, date], List[TimeEntry]] = defaultdict(list)
    for entry in entries:
        by_user_day[(entry.user_id, entry.date)].append(entry)

    result = AllocationResult()
    for ticket in tickets:
        day_entries = by_user_day.get((ticket.user_id, ticket.date), [])
        result.extend(allocate_ticket(ticket, day_entries, profiles.get(ticket.user_id)))
    return result
