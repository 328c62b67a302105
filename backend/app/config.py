"""
Reporting configuration — single source of truth for rate defaults,
rounding, department names and pay-period anchoring.

Import from here in all report services rather than hardcoding values.
"""
from __future__ import annotations

from datetime import date

# ── Rates ─────────────────────────────────────────────────────────────────────

# Last-resort shop billable rate when neither the employee profile nor the
# legacy time_entries.rate column carries a value. An active employee should
# never reach this; it only keeps a reporting run from producing zero revenue.
DEFAULT_SHOP_BILLABLE_RATE: float = 110.0

# Overtime rates are always this multiple of the corresponding base rate
OVERTIME_MULTIPLIER: float = 1.5

# Tolerance when comparing a stored overtime rate against base × 1.5
OVERTIME_RATE_TOLERANCE: float = 0.005


# ── Departments ──────────────────────────────────────────────────────────────

# Panel Shop employees carry a single shop pay rate and no billable field rates
PANEL_SHOP_DEPARTMENT: str = "Panel Shop"


# ── Grouping keys ────────────────────────────────────────────────────────────

UNASSIGNED_CUSTOMER: str = "unassigned"
NO_PROJECT_ID: str = "no-project"
NO_PROJECT_NAME: str = "(No Project)"
NO_CUSTOMER_ID: str = "no-customer"
NO_CUSTOMER_NAME: str = "(No Customer)"
UNKNOWN_EMPLOYEE_NAME: str = "Unknown"


# ── Rounding ─────────────────────────────────────────────────────────────────

# Hour totals are rounded UP to this increment, once, after all summation
HOURS_ROUNDING_INCREMENT: str = "0.1"

# A total at most this far above a 0.1 step is float summation noise
# (0.1 + 0.2 = 0.30000000000000004) and stays on that step; it is the only
# case where a rounded figure may sit below its raw value.
HOURS_NOISE_TOLERANCE: str = "1e-9"

# Money is reported to the cent
MONEY_DECIMALS: int = 2


# ── Rate-type labels ─────────────────────────────────────────────────────────
# Normalised label (lower case, single spaces) → canonical bucket value.
# Anything not listed is unknown and is reported as a warning.
RATE_LABEL_ALIASES: dict[str, str] = {
    "shop time":        "shop_time",
    "shop":             "shop_time",
    "regular time":     "shop_time",
    "regular":          "shop_time",
    "rt":               "shop_time",
    "shop overtime":    "shop_overtime",
    "shop ot":          "shop_overtime",
    "shop time overtime": "shop_overtime",
    "field time":       "field_time",
    "field":            "field_time",
    "ft":               "field_time",
    "field overtime":   "field_overtime",
    "field ot":         "field_overtime",
    "field time overtime": "field_overtime",
    "travel time":      "travel_time",
    "travel":           "travel_time",
    "tt":               "travel_time",
    "internal":         "internal",
    "internal time":    "internal",
    "non billable":     "internal",
}


# ── Pay periods ──────────────────────────────────────────────────────────────

# Biweekly payroll: reference period 19 Jan 2026 – 1 Feb 2026, paid Fri 6 Feb
PAY_PERIOD_ANCHOR: date = date(2026, 1, 19)
PAY_PERIOD_LENGTH_DAYS: int = 14
PAYDAY_OFFSET_DAYS: int = 5
