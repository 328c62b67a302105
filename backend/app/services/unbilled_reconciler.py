"""
unbilled_reconciler.py — Fold ticket-billed hours and clocked hours into one day's buckets.

Per billable rate type t on a day:
    unbilled_t       = max(0, payroll_t − ticket_t)
    bucket_t.hours   = payroll_t − unbilled_t          (clocked hours that were billed)
    bucket_t.revenue = ticket revenue for t            (tickets are the revenue basis)
    bucket_t.cost    = bucket_t.hours × pay rate(t)
    internal.hours  += unbilled_t, internal.cost += unbilled_t × pay rate(t)

Non-billable clocked hours go to internal at the shop pay rate. Internal hours
earn only the internal rate. The bucket hours of a day therefore always sum to
the day's clocked hours, and the day's cost always equals its payroll cost.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional

from app.services.allocation_engine import AllocationSlice
from app.services.breakdown_builder import RateTypeBreakdown
from app.services.payroll_cost import DayPayroll
from app.services.rate_resolver import billable_rate_for, pay_rate_for
from app.services.timesheet_types import BILLABLE_BUCKETS, EmployeeRateProfile, RateBucket


@dataclass
class DayReconciliation:
    date: date
    breakdown: RateTypeBreakdown
    payroll_hours: float
    unbilled_hours: float


def reconcile_day(
    day: DayPayroll,
    slices: Iterable[AllocationSlice],
    profile: Optional[EmployeeRateProfile],
) -> DayReconciliation:
    """Reconcile one employee-day. ``slices`` must all belong to that day."""
    ticket_hours: Dict[RateBucket, float] = defaultdict(float)
    ticket_revenue: Dict[RateBucket, float] = defaultdict(float)
    for piece in slices:
        ticket_hours[piece.bucket] += piece.hours
        ticket_revenue[piece.bucket] += piece.revenue

    breakdown = RateTypeBreakdown()
    internal = breakdown[RateBucket.INTERNAL]
    unbilled_total = 0.0

    for bucket in BILLABLE_BUCKETS:
        payroll_hours = day.billable_hours[bucket]
        billed = max(0.0, ticket_hours[bucket])
        unbilled = max(0.0, payroll_hours - billed)
        worked_and_billed = payroll_hours - unbilled
        pay_rate = pay_rate_for(profile, bucket)

        target = breakdown[bucket]
        target.hours = worked_and_billed
        target.billed_hours = billed
        target.revenue = ticket_revenue[bucket]
        target.cost = worked_and_billed * pay_rate

        internal.hours += unbilled
        internal.cost += unbilled * pay_rate
        unbilled_total += unbilled

    non_billable = day.total_non_billable_hours
    internal.hours += non_billable
    internal.cost += non_billable * pay_rate_for(profile, RateBucket.INTERNAL)
    internal.revenue = internal.hours * billable_rate_for(profile, RateBucket.INTERNAL)

    return DayReconciliation(
        date=day.date,
        breakdown=breakdown,
        payroll_hours=day.total_hours,
        unbilled_hours=unbilled_total,
    )


def reconcile_days(
    days: Dict[date, DayPayroll],
    slices: Iterable[AllocationSlice],
    profile: Optional[EmployeeRateProfile],
) -> Dict[date, DayReconciliation]:
    """
    Reconcile every day that has clocked hours or ticket slices.

    Ticket-only days (no clocked hours) keep their revenue with zero hours.
    """
    slices_by_day: Dict[date, list] = defaultdict(list)
    for piece in slices:
        slices_by_day[piece.date].append(piece)

    result: Dict[date, DayReconciliation] = {}
    for day_date in sorted(set(days) | set(slices_by_day)):
        day = days.get(day_date) or DayPayroll(date=day_date)
        result[day_date] = reconcile_day(day, slices_by_day.get(day_date, []), profile)
    return result
