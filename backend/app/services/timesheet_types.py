"""
timesheet_types.py — Record types shared by the reporting engines.

Covers:
  - Closed rate-type enumerations (entry rate types and the six report buckets)
  - Rate-label classification via an explicit alias table
  - Read-only snapshots of time entries, service tickets and rate profiles,
    each built from a collaborator row through ``from_record``
  - Numeric coercion helpers (malformed → 0 / unset, negative → 0)
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.config import (
    OVERTIME_MULTIPLIER,
    OVERTIME_RATE_TOLERANCE,
    PANEL_SHOP_DEPARTMENT,
    RATE_LABEL_ALIASES,
    UNKNOWN_EMPLOYEE_NAME,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class RateBucket(str, Enum):
    """The six canonical report buckets."""

    INTERNAL = "internal"
    SHOP_TIME = "shop_time"
    FIELD_TIME = "field_time"
    TRAVEL_TIME = "travel_time"
    SHOP_OVERTIME = "shop_overtime"
    FIELD_OVERTIME = "field_overtime"

    @property
    def is_billable(self) -> bool:
        return self is not RateBucket.INTERNAL


BILLABLE_BUCKETS: Tuple[RateBucket, ...] = (
    RateBucket.SHOP_TIME,
    RateBucket.FIELD_TIME,
    RateBucket.TRAVEL_TIME,
    RateBucket.SHOP_OVERTIME,
    RateBucket.FIELD_OVERTIME,
)

ALL_BUCKETS: Tuple[RateBucket, ...] = (RateBucket.INTERNAL,) + BILLABLE_BUCKETS


class RateType(str, Enum):
    """Rate type stored on a time entry."""

    SHOP_TIME = "Shop Time"
    SHOP_OVERTIME = "Shop Overtime"
    TRAVEL_TIME = "Travel Time"
    FIELD_TIME = "Field Time"
    FIELD_OVERTIME = "Field Overtime"

    @property
    def bucket(self) -> RateBucket:
        return _RATE_TYPE_BUCKETS[self]


_RATE_TYPE_BUCKETS: Dict[RateType, RateBucket] = {
    RateType.SHOP_TIME: RateBucket.SHOP_TIME,
    RateType.SHOP_OVERTIME: RateBucket.SHOP_OVERTIME,
    RateType.TRAVEL_TIME: RateBucket.TRAVEL_TIME,
    RateType.FIELD_TIME: RateBucket.FIELD_TIME,
    RateType.FIELD_OVERTIME: RateBucket.FIELD_OVERTIME,
}

_BUCKET_RATE_TYPES: Dict[RateBucket, RateType] = {v: k for k, v in _RATE_TYPE_BUCKETS.items()}

_OVERTIME_PROMOTION: Dict[RateBucket, RateBucket] = {
    RateBucket.SHOP_TIME: RateBucket.SHOP_OVERTIME,
    RateBucket.FIELD_TIME: RateBucket.FIELD_OVERTIME,
}

_LABEL_SEPARATORS = re.compile(r"[\s_\-/]+")


def normalise_rate_label(label: Any) -> str:
    """Lower-case a label and collapse separators to single spaces."""
    if label is None:
        return ""
    text = _LABEL_SEPARATORS.sub(" ", str(label)).strip().lower()
    return text.replace("over time", "overtime")


def classify_rate_label(label: Any, is_overtime: bool = False) -> Optional[RateBucket]:
    """
    Classify a free-text rate label into a report bucket.

    Returns ``None`` for labels outside the alias table; the caller decides
    the fallback and records it. ``is_overtime`` promotes shop and field time
    to their overtime buckets (travel time has no overtime variant).
    """
    key = normalise_rate_label(label)
    value = RATE_LABEL_ALIASES.get(key)
    if value is None:
        return None
    bucket = RateBucket(value)
    if is_overtime:
        bucket = _OVERTIME_PROMOTION.get(bucket, bucket)
    return bucket


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def coerce_number(value: Any) -> Optional[float]:
    """Return a finite float, or None when ``value`` is missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_hours(value: Any) -> float:
    """Hours are never negative; missing or malformed hours count as 0."""
    number = coerce_number(value)
    if number is None:
        return 0.0
    return max(0.0, number)


def coerce_rate(value: Any) -> Optional[float]:
    """A rate is either a non-negative number or unset (None)."""
    number = coerce_number(value)
    if number is None or number < 0:
        return None
    return number


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes", "y")
    return bool(value)


def coerce_date(value: Any) -> date:
    """Accept a date, datetime or ISO string (time part ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise ValueError("missing date")
    return date.fromisoformat(str(value).strip()[:10])


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _nested(record: Mapping[str, Any], *path: str) -> Any:
    node: Any = record
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


# ---------------------------------------------------------------------------
# Input snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeEntry:
    id: str
    user_id: str
    date: date
    hours: float
    billable: bool
    rate_type: RateType = RateType.SHOP_TIME
    rate: float = 0.0                      # legacy per-entry billable rate
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    unknown_rate_label: Optional[str] = None

    def __post_init__(self):
        # Typed records bypass from_record; clamp here as well
        object.__setattr__(self, "hours", coerce_hours(self.hours))
        object.__setattr__(self, "rate", coerce_rate(self.rate) or 0.0)

    @property
    def bucket(self) -> RateBucket:
        return self.rate_type.bucket

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TimeEntry":
        """
        Build from a ``time_entries`` row joined with ``project`` → ``customer``.

        Raises ValueError only when the row has no usable date.
        """
        raw_label = record.get("rate_type", record.get("rateType"))
        unknown: Optional[str] = None
        rate_type = RateType.SHOP_TIME
        if raw_label not in (None, ""):
            bucket = classify_rate_label(raw_label)
            if bucket is None or bucket is RateBucket.INTERNAL:
                unknown = str(raw_label)
            else:
                rate_type = _BUCKET_RATE_TYPES[bucket]

        project_id = _optional_str(record.get("project_id", record.get("projectId")))
        if project_id is None:
            project_id = _optional_str(_nested(record, "project", "id"))
        customer_id = _optional_str(record.get("customer_id", record.get("customerId")))
        if customer_id is None:
            customer_id = _optional_str(_nested(record, "project", "customer", "id"))

        return cls(
            id=str(record.get("id", "")),
            user_id=str(record.get("user_id", record.get("userId")) or ""),
            date=coerce_date(record.get("date")),
            hours=coerce_hours(record.get("hours")),
            billable=coerce_bool(record.get("billable", False)),
            rate_type=rate_type,
            rate=coerce_rate(record.get("rate")) or 0.0,
            project_id=project_id,
            project_name=_optional_str(
                record.get("project_name") or _nested(record, "project", "name")
            ),
            customer_id=customer_id,
            customer_name=_optional_str(
                record.get("customer_name") or _nested(record, "project", "customer", "name")
            ),
            unknown_rate_label=unknown,
        )


@dataclass(frozen=True)
class ServiceTicketRecord:
    date: date
    user_id: str
    total_hours: float
    is_edited: bool = False
    id: Optional[str] = None
    customer_id: Optional[str] = None
    project_id: Optional[str] = None
    edited_hours: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "total_hours", coerce_hours(self.total_hours))

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ServiceTicketRecord":
        edited = record.get("edited_hours", record.get("editedHours"))
        if not isinstance(edited, Mapping):
            edited = {}
        return cls(
            id=_optional_str(record.get("id")),
            date=coerce_date(record.get("date")),
            user_id=str(record.get("user_id", record.get("userId")) or ""),
            customer_id=_optional_str(record.get("customer_id", record.get("customerId"))),
            project_id=_optional_str(record.get("project_id", record.get("projectId"))),
            total_hours=coerce_hours(record.get("total_hours", record.get("totalHours"))),
            is_edited=coerce_bool(record.get("is_edited", record.get("isEdited", False))),
            edited_hours=dict(edited),
        )


# Profile fields in (base, overtime) pairs that must honour the 1.5× law
_OVERTIME_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("shop_rate", "shop_ot_rate"),
    ("field_rate", "field_ot_rate"),
    ("shop_pay_rate", "shop_ot_pay_rate"),
    ("field_pay_rate", "field_ot_pay_rate"),
)

# Stored column name → profile field
_PROFILE_COLUMNS: Dict[str, str] = {
    "rt_rate": "shop_rate",
    "tt_rate": "travel_rate",
    "ft_rate": "field_rate",
    "shop_ot_rate": "shop_ot_rate",
    "field_ot_rate": "field_ot_rate",
    "internal_rate": "internal_rate",
    "shop_pay_rate": "shop_pay_rate",
    "field_pay_rate": "field_pay_rate",
    "shop_ot_pay_rate": "shop_ot_pay_rate",
    "field_ot_pay_rate": "field_ot_pay_rate",
}


@dataclass(frozen=True)
class EmployeeRateProfile:
    """Billable and pay rates for one employee; ``None`` means unset."""

    user_id: str
    department: Optional[str] = None
    employee_name: str = UNKNOWN_EMPLOYEE_NAME
    email: Optional[str] = None
    position: Optional[str] = None
    shop_rate: Optional[float] = None
    travel_rate: Optional[float] = None
    field_rate: Optional[float] = None
    shop_ot_rate: Optional[float] = None
    field_ot_rate: Optional[float] = None
    internal_rate: Optional[float] = None
    shop_pay_rate: Optional[float] = None
    field_pay_rate: Optional[float] = None
    shop_ot_pay_rate: Optional[float] = None
    field_ot_pay_rate: Optional[float] = None
    notes: Tuple[str, ...] = ()

    def __post_init__(self):
        """
        Applied to every profile, whether built from a row or constructed
        directly. Each overtime rate becomes 1.5× its base whenever the base
        is set; Panel Shop drops its billable field / overtime rates.
        Replacements are appended to ``notes``.
        """
        rates: Dict[str, Optional[float]] = {
            attr: coerce_rate(getattr(self, attr)) for attr in _PROFILE_COLUMNS.values()
        }
        notes: List[str] = list(self.notes)

        if self.is_panel_shop:
            # No separate billable field / overtime rates for Panel Shop
            for attr in ("field_rate", "shop_ot_rate", "field_ot_rate"):
                if rates[attr] is not None:
                    notes.append(f"{attr} ignored for {PANEL_SHOP_DEPARTMENT}")
                rates[attr] = None

        for base_attr, ot_attr in _OVERTIME_PAIRS:
            base = rates[base_attr]
            if base is None:
                continue
            if self.is_panel_shop and ot_attr in ("shop_ot_rate", "field_ot_rate"):
                continue
            derived = base * OVERTIME_MULTIPLIER
            stored = rates[ot_attr]
            if stored is not None and abs(stored - derived) > OVERTIME_RATE_TOLERANCE:
                notes.append(
                    f"{ot_attr} {stored:.2f} replaced by {OVERTIME_MULTIPLIER}x "
                    f"{base_attr} = {derived:.2f}"
                )
            rates[ot_attr] = derived

        for attr, value in rates.items():
            object.__setattr__(self, attr, value)
        object.__setattr__(self, "notes", tuple(notes))

    @property
    def is_panel_shop(self) -> bool:
        return (self.department or "").strip().lower() == PANEL_SHOP_DEPARTMENT.lower()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "EmployeeRateProfile":
        """Build from an ``employees`` row (optionally with a nested ``user``)."""
        rates: Dict[str, Optional[float]] = {
            attr: coerce_rate(record.get(column, record.get(attr)))
            for column, attr in _PROFILE_COLUMNS.items()
        }

        user = record.get("user") if isinstance(record.get("user"), Mapping) else {}
        first = str(user.get("first_name") or "").strip()
        last = str(user.get("last_name") or "").strip()
        name = f"{first} {last}".strip() or _optional_str(record.get("employee_name"))

        return cls(
            user_id=str(record.get("user_id", record.get("userId")) or ""),
            department=_optional_str(record.get("department")),
            employee_name=name or UNKNOWN_EMPLOYEE_NAME,
            email=_optional_str(user.get("email") or record.get("email")),
            position=_optional_str(record.get("position")),
            **rates,
        )
