"""Collapse duplicate service-ticket records to one per (date, customer, employee)."""

from typing import Dict, Iterable, List, Tuple

from app.config import UNASSIGNED_CUSTOMER
from app.services.timesheet_types import ServiceTicketRecord

TicketKey = Tuple[str, str, str]


def ticket_key(ticket: ServiceTicketRecord) -> TicketKey:
    return (
        ticket.date.isoformat(),
        ticket.customer_id or UNASSIGNED_CUSTOMER,
        ticket.user_id,
    )


def dedupe_tickets(tickets: Iterable[ServiceTicketRecord]) -> List[ServiceTicketRecord]:
    """
    Keep one record per key, in first-seen key order.

    An edited record replaces an unedited one; otherwise the first record
    encountered wins, so the result depends only on input order.
    """
    kept: Dict[TicketKey, ServiceTicketRecord] = {}
    for ticket in tickets:
        key = ticket_key(ticket)
        current = kept.get(key)
        if current is None:
            kept[key] = ticket
        elif ticket.is_edited and not current.is_edited:
            kept[key] = ticket
    return list(kept.values())
