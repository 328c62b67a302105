"""
conftest.py — Shared pytest fixtures for the timesheet reporting test suite.

No database or external service fixtures are defined here. The report engine
is a pure computation over posted snapshots, so every test builds its input
rows in memory.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def report_engine():
    """EmployeeReportEngine (stateless; safe to share across tests)."""
    from app.services.report_engine import EmployeeReportEngine
    return EmployeeReportEngine()


@pytest.fixture(autouse=True)
def _reset_perf_tracker():
    """Keep the module-level PerformanceTracker from leaking between tests."""
    from app.services.perf_monitor import tracker
    tracker.reset()
    yield
    tracker.reset()


# ---------------------------------------------------------------------------
# Employee profile rows
# ---------------------------------------------------------------------------

@pytest.fixture
def standard_profile_row():
    """
    Automation technician with a full rate card.

    Billable: shop 110, travel 85, field 140 (overtime derived: 165 / 210)
    Pay:      shop 25, field 30        (overtime derived: 37.5 / 45)
    """
    return {
        "user_id": "u-std",
        "department": "Automation",
        "position": "Technician",
        "user": {"first_name": "Alex", "last_name": "Rivera", "email": "alex@example.com"},
        "rt_rate": 110,
        "tt_rate": 85,
        "ft_rate": 140,
        "internal_rate": 0,
        "shop_pay_rate": 25,
        "field_pay_rate": 30,
    }


@pytest.fixture
def panel_profile_row():
    """
    Panel Shop builder: one shop pay rate, no billable field / overtime rates.
    The stored ft_rate must be ignored.
    """
    return {
        "user_id": "u-panel",
        "department": "Panel Shop",
        "employee_name": "Sam Lee",
        "rt_rate": 100,
        "ft_rate": 140,
        "shop_pay_rate": 22,
    }


@pytest.fixture
def standard_profile(standard_profile_row):
    from app.services.timesheet_types import EmployeeRateProfile
    return EmployeeRateProfile.from_record(standard_profile_row)


@pytest.fixture
def panel_profile(panel_profile_row):
    from app.services.timesheet_types import EmployeeRateProfile
    return EmployeeRateProfile.from_record(panel_profile_row)


# ---------------------------------------------------------------------------
# Reference reconciliation day
# ---------------------------------------------------------------------------

@pytest.fixture
def split_day_entries():
    """
    5 Jan 2023: 4 h billable shop time + 4 h billable field time for
    customer c-1 on project p-1.
    """
    base = {
        "user_id": "u-std",
        "date": "2023-01-05",
        "billable": True,
        "project_id": "p-1",
        "project_name": "Line 3 retrofit",
        "customer_id": "c-1",
        "customer_name": "Acme Foods",
    }
    return [
        dict(base, id="te-1", hours=4, rate_type="Shop Time"),
        dict(base, id="te-2", hours=4, rate_type="Field Time"),
    ]


@pytest.fixture
def six_hour_ticket():
    """Unedited ticket billing 6 of the 8 clocked hours on 5 Jan 2023."""
    return {
        "id": "st-1",
        "date": "2023-01-05",
        "user_id": "u-std",
        "customer_id": "c-1",
        "total_hours": 6,
    }
