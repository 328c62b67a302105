"""
report_engine.py — Employee revenue / cost reconciliation report

Covers:
  - Snapshot normalisation (collaborator rows → typed records, window filter)
  - Service-ticket deduplication and allocation across rate types
  - Per-day unbilled-time reconciliation against clocked payroll hours
  - Six-bucket rate-type breakdown with revenue, payroll cost and profit
  - Project / customer breakdowns and daily trend series
  - Efficiency metrics (billable ratio, average rate, hours per day)
  - Filtering, sorting and grand totals over the employee set

The engine is a pure, synchronous computation over one reporting window. It
performs no I/O and keeps no state between calls; data problems never raise,
they degrade to documented fallbacks and are listed in ``warnings``.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from app.config import (
    NO_CUSTOMER_ID,
    NO_CUSTOMER_NAME,
    NO_PROJECT_ID,
    NO_PROJECT_NAME,
    UNKNOWN_EMPLOYEE_NAME,
)
from app.services.allocation_engine import AllocationSlice, allocate_tickets
from app.services.breakdown_builder import RateTypeBreakdown, build_breakdown
from app.services.payroll_cost import payroll_by_day, payroll_hours_by_bucket
from app.services.perf_monitor import timed
from app.services.rounding import (
    round_hours_up,
    round_money,
    sum_money,
    sum_rounded_hours,
)
from app.services.ticket_dedup import dedupe_tickets
from app.services.timesheet_types import (
    ALL_BUCKETS,
    EmployeeRateProfile,
    ServiceTicketRecord,
    TimeEntry,
)
from app.services.unbilled_reconciler import reconcile_days

T = TypeVar("T")

SORTABLE_FIELDS: Tuple[str, ...] = (
    "user_id",
    "employee_name",
    "department",
    "position",
    "total_hours",
    "billable_hours",
    "non_billable_hours",
    "billed_hours",
    "unbilled_hours",
    "billable_ratio",
    "efficiency",
    "average_rate",
    "hours_per_day",
    "revenue_per_hour",
    "total_revenue",
    "total_cost",
    "net_profit",
    "service_ticket_count",
)


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------

@dataclass
class EmployeeMetrics:
    user_id: str
    employee_name: str = UNKNOWN_EMPLOYEE_NAME
    employee_email: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    is_configured: bool = False
    total_hours: float = 0.0
    billable_hours: float = 0.0
    non_billable_hours: float = 0.0
    billed_hours: float = 0.0
    unbilled_hours: float = 0.0
    billable_ratio: float = 0.0
    efficiency: float = 0.0
    average_rate: float = 0.0
    hours_per_day: float = 0.0
    revenue_per_hour: float = 0.0
    total_revenue: float = 0.0
    total_cost: float = 0.0
    net_profit: float = 0.0
    service_ticket_count: int = 0
    rate_type_breakdown: Dict[str, Dict[str, float]] = field(default_factory=dict)
    payroll_hours_by_rate_type: Dict[str, Dict[str, float]] = field(default_factory=dict)
    project_breakdown: List[Dict[str, Any]] = field(default_factory=list)
    customer_breakdown: List[Dict[str, Any]] = field(default_factory=list)
    trends: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "employee_name": self.employee_name,
            "employee_email": self.employee_email,
            "department": self.department,
            "position": self.position,
            "is_configured": self.is_configured,
            "total_hours": self.total_hours,
            "billable_hours": self.billable_hours,
            "non_billable_hours": self.non_billable_hours,
            "billed_hours": self.billed_hours,
            "unbilled_hours": self.unbilled_hours,
            "billable_ratio": self.billable_ratio,
            "efficiency": self.efficiency,
            "average_rate": self.average_rate,
            "hours_per_day": self.hours_per_day,
            "revenue_per_hour": self.revenue_per_hour,
            "total_revenue": self.total_revenue,
            "total_cost": self.total_cost,
            "net_profit": self.net_profit,
            "service_ticket_count": self.service_ticket_count,
            "rate_type_breakdown": self.rate_type_breakdown,
            "payroll_hours_by_rate_type": self.payroll_hours_by_rate_type,
            "project_breakdown": self.project_breakdown,
            "customer_breakdown": self.customer_breakdown,
            "trends": self.trends,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _coerce_records(
    records: Iterable[Any],
    record_type: Type[T],
    label: str,
    warnings: List[str],
) -> List[T]:
    """Accept typed records or collaborator rows; rows without a usable date are skipped."""
    typed: List[T] = []
    for index, record in enumerate(records or []):
        if isinstance(record, record_type):
            typed.append(record)
            continue
        if not isinstance(record, Mapping):
            warnings.append(f"{label} #{index}: unsupported record type; skipped")
            continue
        try:
            typed.append(record_type.from_record(record))
        except ValueError as exc:
            ident = record.get("id", f"#{index}")
            warnings.append(f"{label} {ident}: {exc}; skipped")
    return typed


def _in_window(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return round(numerator / denominator * scale, 2) if denominator > 0 else 0.0


def _round_breakdown(breakdown: RateTypeBreakdown) -> Dict[str, Dict[str, float]]:
    rounded: Dict[str, Dict[str, float]] = {}
    for bucket in ALL_BUCKETS:
        b = breakdown[bucket]
        rounded[bucket.value] = {
            "hours": round_hours_up(b.hours),
            "billed_hours": round_hours_up(b.billed_hours),
            "revenue": round_money(b.revenue),
            "cost": round_money(b.cost),
            "profit": round_money(b.profit),
        }
    return rounded


def _group_rows(
    entries: List[TimeEntry],
    slices: List[AllocationSlice],
    key_of: Callable[[Any], Optional[str]],
    name_of: Callable[[Any], Optional[str]],
    missing_id: str,
    missing_name: str,
    id_field: str,
    name_field: str,
) -> List[Dict[str, Any]]:
    """Project or customer breakdown: clocked hours from entries, revenue from ticket slices."""
    rows: Dict[str, Dict[str, Any]] = {}

    def row_for(record: Any) -> Dict[str, Any]:
        key = key_of(record) or missing_id
        row = rows.get(key)
        if row is None:
            row = rows[key] = {
                id_field: key,
                name_field: None,
                "hours": 0.0,
                "billable_hours": 0.0,
                "revenue": 0.0,
            }
        if row[name_field] is None and name_of(record):
            row[name_field] = name_of(record)
        return row

    for entry in entries:
        row = row_for(entry)
        row["hours"] += entry.hours
        if entry.billable:
            row["billable_hours"] += entry.hours
    for piece in slices:
        row_for(piece)["revenue"] += piece.revenue

    result = []
    for key, row in rows.items():
        if row[name_field] is None:
            row[name_field] = missing_name if key == missing_id else key
        row["hours"] = round_hours_up(row["hours"])
        row["billable_hours"] = round_hours_up(row["billable_hours"])
        row["revenue"] = round_money(row["revenue"])
        result.append(row)
    result.sort(key=lambda r: (-r["hours"], r[id_field]))
    return result


def aggregate_employee_metrics(
    user_id: str,
    entries: List[TimeEntry],
    slices: List[AllocationSlice],
    service_ticket_count: int,
    profile: Optional[EmployeeRateProfile],
) -> EmployeeMetrics:
    """
    Build one employee's metrics for the window.

    Hour totals are summed raw across the window and rounded up exactly once
    here; money is rounded to the cent for presentation only.
    """
    days = payroll_by_day(entries)
    reconciled = reconcile_days(days, slices, profile)
    breakdown = build_breakdown(r.breakdown for r in reconciled.values())

    raw_total = sum(e.hours for e in entries)
    raw_billable = breakdown.billable_hours
    raw_internal = breakdown.internal_hours
    revenue = breakdown.revenue
    cost = breakdown.cost
    worked_days = len(days)
    billable_ratio = _ratio(raw_billable, raw_total, 100.0)

    trends = [
        {
            "date": day.isoformat(),
            "hours": round_hours_up(r.payroll_hours),
            "billable_hours": round_hours_up(r.breakdown.billable_hours),
            "revenue": round_money(r.breakdown.revenue),
        }
        for day, r in reconciled.items()
    ]

    payroll_hours = {
        bucket: {flag: round_hours_up(hours) for flag, hours in split.items()}
        for bucket, split in payroll_hours_by_bucket(entries).items()
    }

    metrics = EmployeeMetrics(
        user_id=user_id,
        is_configured=profile is not None,
        total_hours=round_hours_up(raw_total),
        billable_hours=round_hours_up(raw_billable),
        non_billable_hours=round_hours_up(raw_internal),
        billed_hours=round_hours_up(breakdown.billed_hours),
        unbilled_hours=round_hours_up(sum(r.unbilled_hours for r in reconciled.values())),
        billable_ratio=billable_ratio,
        efficiency=billable_ratio,
        average_rate=_ratio(revenue, raw_billable),
        hours_per_day=round(raw_total / max(1, worked_days), 2),
        revenue_per_hour=_ratio(revenue, raw_total),
        total_revenue=round_money(revenue),
        total_cost=round_money(cost),
        net_profit=round_money(revenue - cost),
        service_ticket_count=service_ticket_count,
        rate_type_breakdown=_round_breakdown(breakdown),
        payroll_hours_by_rate_type=payroll_hours,
        project_breakdown=_group_rows(
            entries, slices,
            key_of=lambda r: r.project_id,
            name_of=lambda r: r.project_name,
            missing_id=NO_PROJECT_ID, missing_name=NO_PROJECT_NAME,
            id_field="project_id", name_field="project_name",
        ),
        customer_breakdown=_group_rows(
            entries, slices,
            key_of=lambda r: r.customer_id,
            name_of=lambda r: r.customer_name,
            missing_id=NO_CUSTOMER_ID, missing_name=NO_CUSTOMER_NAME,
            id_field="customer_id", name_field="customer_name",
        ),
        trends=trends,
    )
    if profile is not None:
        metrics.employee_name = profile.employee_name
        metrics.employee_email = profile.email
        metrics.department = profile.department
        metrics.position = profile.position
    return metrics


def filter_metrics(
    metrics: Iterable[EmployeeMetrics],
    employee_id: Optional[str] = None,
    department: Optional[str] = None,
) -> List[EmployeeMetrics]:
    """``None`` or ``"all"`` disables a filter."""
    selected = []
    for m in metrics:
        if employee_id not in (None, "all") and m.user_id != employee_id:
            continue
        if department not in (None, "all") and (m.department or "") != department:
            continue
        selected.append(m)
    return selected


def sort_metrics(
    metrics: Iterable[EmployeeMetrics],
    sort_field: str = "total_hours",
    sort_direction: str = "desc",
) -> List[EmployeeMetrics]:
    """
    Sort by one metric field; ties fall back to ``user_id`` ascending.

    Raises ValueError for an unknown field or direction.
    """
    if sort_field not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by '{sort_field}'; choose one of {', '.join(SORTABLE_FIELDS)}")
    direction = (sort_direction or "").lower()
    if direction not in ("asc", "desc"):
        raise ValueError(f"sort_direction must be 'asc' or 'desc'; received '{sort_direction}'")

    items = sorted(metrics, key=lambda m: m.user_id)
    numeric = sort_field not in ("user_id", "employee_name", "department", "position")

    def sort_key(m: EmployeeMetrics):
        value = getattr(m, sort_field)
        if numeric:
            return value or 0
        return (value or "").casefold()

    # Stable sort keeps user_id order within ties in both directions
    return sorted(items, key=sort_key, reverse=(direction == "desc"))


def calculate_totals(metrics: Iterable[EmployeeMetrics]) -> Dict[str, Any]:
    """
    Grand totals over already-rounded employee figures (no re-rounding).

    Every hour total is the sum of the matching per-employee figure, so
    ``total_hours`` can sit below billable + non-billable, by at most one
    rounding step per employee.
    """
    items = list(metrics)
    return {
        "employee_count": len(items),
        "total_hours": sum_rounded_hours(m.total_hours for m in items),
        "billable_hours": sum_rounded_hours(m.billable_hours for m in items),
        "non_billable_hours": sum_rounded_hours(m.non_billable_hours for m in items),
        "billed_hours": sum_rounded_hours(m.billed_hours for m in items),
        "unbilled_hours": sum_rounded_hours(m.unbilled_hours for m in items),
        "total_revenue": sum_money(m.total_revenue for m in items),
        "total_cost": sum_money(m.total_cost for m in items),
        "net_profit": sum_money(m.net_profit for m in items),
        "service_ticket_count": sum(m.service_ticket_count for m in items),
    }


# ---------------------------------------------------------------------------
# EmployeeReportEngine
# ---------------------------------------------------------------------------

class EmployeeReportEngine:
    """
    Reconciles clocked time entries against service tickets into
    per-employee, per-rate-type revenue / cost / profit for one window.

    Stateless: every call works on its own input snapshot, so concurrent
    report runs need no coordination.
    """

    @timed
    def build_report(
        self,
        time_entries: Iterable[Any],
        service_tickets: Iterable[Any],
        profiles: Iterable[Any],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        employee_id: Optional[str] = None,
        department: Optional[str] = None,
        sort_field: str = "total_hours",
        sort_direction: str = "desc",
    ) -> Dict[str, Any]:
        """
        Run the full reconciliation.

        Args:
            time_entries    — ``TimeEntry`` records or ``time_entries`` rows
            service_tickets — ``ServiceTicketRecord`` records or ``service_tickets`` rows
            profiles        — ``EmployeeRateProfile`` records or ``employees`` rows
            start_date / end_date — inclusive window; ``None`` leaves it open
            employee_id / department — optional filters (``"all"`` = no filter)
            sort_field / sort_direction — ordering of the employee list

        Returns a dict with ``employees`` (list of metric dicts), ``totals``
        (grand totals over the filtered set), ``window`` and ``warnings``.
        Raises ValueError only for an invalid sort request.
        """
        warnings: List[str] = []

        profile_list = _coerce_records(profiles, EmployeeRateProfile, "employee profile", warnings)
        profile_map: Dict[str, EmployeeRateProfile] = {}
        for profile in profile_list:
            if not profile.user_id:
                warnings.append(f"employee profile '{profile.employee_name}' has no user_id; skipped")
                continue
            if profile.user_id in profile_map:
                warnings.append(f"duplicate profile for user {profile.user_id}; first one kept")
                continue
            profile_map[profile.user_id] = profile
            for note in profile.notes:
                warnings.append(f"user {profile.user_id}: {note}")

        entries: List[TimeEntry] = []
        for entry in _coerce_records(time_entries, TimeEntry, "time entry", warnings):
            if not _in_window(entry.date, start_date, end_date):
                continue
            if not entry.user_id:
                warnings.append(f"time entry {entry.id or '?'} has no user_id; skipped")
                continue
            if entry.unknown_rate_label is not None:
                warnings.append(
                    f"time entry {entry.id or '?'}: unknown rate type "
                    f"'{entry.unknown_rate_label}' counted as shop time"
                )
            entries.append(entry)

        tickets = [
            t for t in _coerce_records(service_tickets, ServiceTicketRecord, "service ticket", warnings)
            if _in_window(t.date, start_date, end_date)
        ]
        tickets = dedupe_tickets(tickets)

        allocation = allocate_tickets(tickets, entries, profile_map)
        warnings.extend(allocation.warnings)

        entries_by_user: Dict[str, List[TimeEntry]] = defaultdict(list)
        for entry in entries:
            entries_by_user[entry.user_id].append(entry)
        slices_by_user: Dict[str, List[AllocationSlice]] = defaultdict(list)
        for piece in allocation.slices:
            slices_by_user[piece.user_id].append(piece)
        tickets_by_user: Dict[str, int] = defaultdict(int)
        for ticket in tickets:
            tickets_by_user[ticket.user_id] += 1

        # Profiles first (input order), then users seen only in entries / tickets
        user_ids: List[str] = list(profile_map)
        for uid in list(entries_by_user) + [t.user_id for t in tickets]:
            if uid and uid not in profile_map and uid not in user_ids:
                user_ids.append(uid)
                warnings.append(f"user {uid} has no rate profile; reported with zero rates")

        metrics = [
            aggregate_employee_metrics(
                uid,
                entries_by_user.get(uid, []),
                slices_by_user.get(uid, []),
                tickets_by_user.get(uid, 0),
                profile_map.get(uid),
            )
            for uid in user_ids
        ]

        selected = sort_metrics(
            filter_metrics(metrics, employee_id=employee_id, department=department),
            sort_field=sort_field,
            sort_direction=sort_direction,
        )

        return {
            "window": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
            },
            "employees": [m.to_dict() for m in selected],
            "totals": calculate_totals(selected),
            "warnings": warnings,
        }
