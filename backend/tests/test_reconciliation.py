"""
test_reconciliation.py — Unit tests for payroll cost and unbilled-time reconciliation.

Tests cover:
  - Payroll cost computed from clocked hours only (independent of tickets)
  - Non-billable and travel time paid at the shop pay rate
  - Unbilled billable hours moved to internal at their own pay rate
  - Hours conservation: a day's bucket hours always sum to its clocked hours
  - Cost conservation: a day's bucket cost always equals its payroll cost
  - Over-billed tickets: revenue kept, bucket hours capped at clocked hours
  - Ticket-only days and window-level breakdown folding
"""

from datetime import date

import pytest

from app.services.allocation_engine import AllocationSlice
from app.services.breakdown_builder import build_breakdown
from app.services.payroll_cost import (
    day_payroll_cost,
    payroll_by_day,
    payroll_cost,
    payroll_hours_by_bucket,
)
from app.services.timesheet_types import RateBucket, RateType, TimeEntry
from app.services.unbilled_reconciler import reconcile_day, reconcile_days

_DAY = date(2023, 1, 5)


def _entry(hours, rate_type=RateType.SHOP_TIME, billable=True, day=_DAY):
    return TimeEntry(id="", user_id="u-std", date=day, hours=hours, billable=billable, rate_type=rate_type)


def _slice(bucket, hours, rate, day=_DAY):
    return AllocationSlice(
        date=day, user_id="u-std", bucket=bucket, hours=hours,
        billable_rate=rate, source="proportional",
    )


# ===========================================================================
# Class 1: Payroll cost
# ===========================================================================

class TestPayrollCost:

    def test_billable_hours_paid_per_bucket(self, standard_profile):
        entries = [_entry(4, RateType.SHOP_TIME), _entry(4, RateType.FIELD_TIME)]
        assert abs(payroll_cost(entries, standard_profile) - 220.0) < 0.01

    def test_travel_paid_at_shop_pay_rate(self, standard_profile):
        assert abs(payroll_cost([_entry(2, RateType.TRAVEL_TIME)], standard_profile) - 50.0) < 0.01

    def test_non_billable_paid_at_shop_pay_rate(self, standard_profile):
        """Non-billable field time is internal time, paid at the shop rate (25), not field (30)."""
        cost = payroll_cost([_entry(2, RateType.FIELD_TIME, billable=False)], standard_profile)
        assert abs(cost - 50.0) < 0.01

    def test_overtime_pay(self, standard_profile):
        cost = payroll_cost([_entry(2, RateType.SHOP_OVERTIME)], standard_profile)
        assert abs(cost - 75.0) < 0.01

    def test_unconfigured_costs_nothing(self):
        assert payroll_cost([_entry(8)], None) == 0.0

    def test_days_sorted_ascending(self):
        entries = [_entry(1, day=date(2023, 1, 7)), _entry(1, day=date(2023, 1, 5))]
        assert list(payroll_by_day(entries)) == [date(2023, 1, 5), date(2023, 1, 7)]

    def test_payroll_hours_by_bucket_split(self):
        entries = [_entry(3, RateType.FIELD_TIME), _entry(1, RateType.FIELD_TIME, billable=False)]
        split = payroll_hours_by_bucket(entries)
        assert split["field_time"] == {"billable": 3.0, "non_billable": 1.0}
        assert split["shop_time"] == {"billable": 0.0, "non_billable": 0.0}
        assert "internal" not in split


# ===========================================================================
# Class 2: Single-day reconciliation
# ===========================================================================

class TestReconcileDay:

    def test_partially_billed_day(self, standard_profile):
        """
        4 h shop + 4 h field clocked, ticket of 6 h split 3 / 3:
            shop  3 h  revenue 330  cost 75
            field 3 h  revenue 420  cost 90
            internal 2 h (1 shop @25 + 1 field @30) cost 55, revenue 0
        """
        day = payroll_by_day([_entry(4, RateType.SHOP_TIME), _entry(4, RateType.FIELD_TIME)])[_DAY]
        slices = [_slice(RateBucket.SHOP_TIME, 3, 110.0), _slice(RateBucket.FIELD_TIME, 3, 140.0)]
        result = reconcile_day(day, slices, standard_profile)
        b = result.breakdown

        assert abs(b[RateBucket.SHOP_TIME].hours - 3.0) < 1e-9
        assert abs(b[RateBucket.SHOP_TIME].revenue - 330.0) < 0.01
        assert abs(b[RateBucket.SHOP_TIME].cost - 75.0) < 0.01
        assert abs(b[RateBucket.FIELD_TIME].hours - 3.0) < 1e-9
        assert abs(b[RateBucket.FIELD_TIME].revenue - 420.0) < 0.01
        assert abs(b[RateBucket.FIELD_TIME].cost - 90.0) < 0.01
        assert abs(b[RateBucket.INTERNAL].hours - 2.0) < 1e-9
        assert abs(b[RateBucket.INTERNAL].cost - 55.0) < 0.01
        assert b[RateBucket.INTERNAL].revenue == 0.0
        assert abs(result.unbilled_hours - 2.0) < 1e-9
        assert abs(b.profit - 530.0) < 0.01

    def test_unticketed_day_is_all_internal(self, standard_profile):
        day = payroll_by_day([_entry(8, RateType.FIELD_TIME)])[_DAY]
        b = reconcile_day(day, [], standard_profile).breakdown
        assert b[RateBucket.FIELD_TIME].hours == 0.0
        assert b[RateBucket.INTERNAL].hours == 8.0
        assert abs(b[RateBucket.INTERNAL].cost - 240.0) < 0.01

    def test_over_billed_ticket_keeps_revenue_caps_hours(self, standard_profile):
        day = payroll_by_day([_entry(4, RateType.SHOP_TIME)])[_DAY]
        b = reconcile_day(day, [_slice(RateBucket.SHOP_TIME, 6, 110.0)], standard_profile).breakdown
        assert b[RateBucket.SHOP_TIME].hours == 4.0
        assert b[RateBucket.SHOP_TIME].billed_hours == 6.0
        assert abs(b[RateBucket.SHOP_TIME].revenue - 660.0) < 0.01
        assert b[RateBucket.INTERNAL].hours == 0.0

    def test_ticket_in_unclocked_bucket(self, standard_profile):
        """Edited field hours on a shop-only day: revenue in field, clocked shop hours go internal."""
        day = payroll_by_day([_entry(4, RateType.SHOP_TIME)])[_DAY]
        b = reconcile_day(day, [_slice(RateBucket.FIELD_TIME, 3, 140.0)], standard_profile).breakdown
        assert b[RateBucket.FIELD_TIME].hours == 0.0
        assert abs(b[RateBucket.FIELD_TIME].revenue - 420.0) < 0.01
        assert b[RateBucket.INTERNAL].hours == 4.0
        assert abs(b.cost - 100.0) < 0.01

    def test_internal_rate_earns_revenue(self):
        from app.services.timesheet_types import EmployeeRateProfile
        profile = EmployeeRateProfile.from_record({"user_id": "u-std", "internal_rate": 40, "shop_pay_rate": 20})
        day = payroll_by_day([_entry(2, billable=False)])[_DAY]
        b = reconcile_day(day, [], profile).breakdown
        assert abs(b[RateBucket.INTERNAL].revenue - 80.0) < 0.01
        assert abs(b[RateBucket.INTERNAL].cost - 40.0) < 0.01

    @pytest.mark.parametrize("entries,slices", [
        ([_entry(4), _entry(4, RateType.FIELD_TIME)], [_slice(RateBucket.SHOP_TIME, 3, 110.0)]),
        ([_entry(2.25), _entry(1.1, billable=False)], [_slice(RateBucket.SHOP_TIME, 7, 110.0)]),
        ([_entry(3, RateType.TRAVEL_TIME), _entry(5, RateType.FIELD_OVERTIME)],
         [_slice(RateBucket.FIELD_OVERTIME, 1.7, 210.0), _slice(RateBucket.SHOP_TIME, 2, 110.0)]),
        ([_entry(0.3, RateType.SHOP_OVERTIME)], []),
    ])
    def test_hours_and_cost_conservation(self, standard_profile, entries, slices):
        day = payroll_by_day(entries)[_DAY]
        result = reconcile_day(day, slices, standard_profile)
        assert abs(result.breakdown.total_hours - day.total_hours) < 1e-9
        assert abs(result.breakdown.cost - day_payroll_cost(day, standard_profile)) < 1e-9


# ===========================================================================
# Class 3: Multi-day reconciliation
# ===========================================================================

class TestReconcileDays:

    def test_ticket_only_day_included(self, standard_profile):
        days = payroll_by_day([_entry(4)])
        other = date(2023, 1, 6)
        result = reconcile_days(days, [_slice(RateBucket.SHOP_TIME, 2, 110.0, day=other)], standard_profile)
        assert list(result) == [_DAY, other]
        assert result[other].payroll_hours == 0.0
        assert abs(result[other].breakdown.revenue - 220.0) < 0.01

    def test_slices_reconciled_per_day(self, standard_profile):
        """A ticket on day 2 cannot bill day 1's clocked hours."""
        d1, d2 = date(2023, 1, 5), date(2023, 1, 6)
        days = payroll_by_day([_entry(4, day=d1), _entry(4, day=d2)])
        result = reconcile_days(days, [_slice(RateBucket.SHOP_TIME, 4, 110.0, day=d2)], standard_profile)
        assert result[d1].unbilled_hours == 4.0
        assert result[d2].unbilled_hours == 0.0

    def test_window_breakdown_equals_sum_of_days(self, standard_profile):
        d1, d2 = date(2023, 1, 5), date(2023, 1, 6)
        entries = [_entry(4, day=d1), _entry(2, RateType.FIELD_TIME, day=d2)]
        days = payroll_by_day(entries)
        result = reconcile_days(days, [_slice(RateBucket.SHOP_TIME, 3, 110.0, day=d1)], standard_profile)
        total = build_breakdown(r.breakdown for r in result.values())
        assert abs(total.total_hours - 6.0) < 1e-9
        assert abs(total.cost - payroll_cost(entries, standard_profile)) < 1e-9
        assert abs(total.revenue - 330.0) < 0.01
