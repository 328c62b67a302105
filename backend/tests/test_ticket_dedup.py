"""
test_ticket_dedup.py — Unit tests for service-ticket deduplication.

Key: (date, customer or "unassigned", employee). An edited record replaces an
unedited one; otherwise the first record wins.
"""

from datetime import date

from app.services.ticket_dedup import dedupe_tickets, ticket_key
from app.services.timesheet_types import ServiceTicketRecord


def _ticket(ticket_id, customer="c-1", user="u-1", day=date(2023, 1, 5), edited=False, hours=4.0):
    return ServiceTicketRecord(
        id=ticket_id, date=day, user_id=user, customer_id=customer,
        total_hours=hours, is_edited=edited,
    )


class TestTicketKey:

    def test_key_fields(self):
        assert ticket_key(_ticket("a")) == ("2023-01-05", "c-1", "u-1")

    def test_missing_customer_is_unassigned(self):
        assert ticket_key(_ticket("a", customer=None))[1] == "unassigned"


class TestDedupeTickets:

    def test_distinct_keys_all_kept_in_order(self):
        tickets = [
            _ticket("a", customer="c-2"),
            _ticket("b", customer="c-1"),
            _ticket("c", user="u-2"),
            _ticket("d", day=date(2023, 1, 6)),
        ]
        assert [t.id for t in dedupe_tickets(tickets)] == ["a", "b", "c", "d"]

    def test_first_unedited_wins(self):
        kept = dedupe_tickets([_ticket("a", hours=4.0), _ticket("b", hours=9.0)])
        assert [t.id for t in kept] == ["a"]

    def test_edited_replaces_unedited(self):
        kept = dedupe_tickets([_ticket("a"), _ticket("b", edited=True)])
        assert [t.id for t in kept] == ["b"]

    def test_unedited_never_replaces_edited(self):
        kept = dedupe_tickets([_ticket("a", edited=True), _ticket("b")])
        assert [t.id for t in kept] == ["a"]

    def test_first_edited_wins_among_edited(self):
        kept = dedupe_tickets([_ticket("a"), _ticket("b", edited=True), _ticket("c", edited=True)])
        assert [t.id for t in kept] == ["b"]

    def test_none_and_unassigned_customer_collapse(self):
        kept = dedupe_tickets([_ticket("a", customer=None), _ticket("b", customer="unassigned")])
        assert len(kept) == 1

    def test_replacement_keeps_first_seen_position(self):
        tickets = [_ticket("a"), _ticket("x", customer="c-2"), _ticket("b", edited=True)]
        assert [t.id for t in dedupe_tickets(tickets)] == ["b", "x"]

    def test_empty_input(self):
        assert dedupe_tickets([]) == []
