"""
Request payloads for the employee report endpoint.

Field names follow the stored column names so collaborator rows can be posted
as-is. Hours and rates are left loosely typed: the report engine coerces
malformed values to 0 / unset instead of rejecting the whole report.
"""
import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class TimeEntryIn(BaseModel):
    id: str = ""
    user_id: str
    date: datetime.date
    hours: Any = 0
    billable: bool = False
    rate_type: Optional[str] = "Shop Time"
    rate: Any = None                         # legacy per-entry billable rate
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    project: Optional[Dict[str, Any]] = None    # joined project → customer row


class ServiceTicketIn(BaseModel):
    id: Optional[str] = None
    date: datetime.date
    user_id: str
    customer_id: Optional[str] = None
    project_id: Optional[str] = None
    total_hours: Any = 0
    is_edited: bool = False
    edited_hours: Optional[Dict[str, Any]] = None   # {"Field Time": 2.5} or {"Field Time": [2, 1]}


class EmployeeProfileIn(BaseModel):
    user_id: str
    department: Optional[str] = None
    employee_name: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    user: Optional[Dict[str, Any]] = None       # joined users row (first_name, last_name, email)
    rt_rate: Any = None
    tt_rate: Any = None
    ft_rate: Any = None
    shop_ot_rate: Any = None
    field_ot_rate: Any = None
    internal_rate: Any = None
    shop_pay_rate: Any = None
    field_pay_rate: Any = None
    shop_ot_pay_rate: Any = None
    field_ot_pay_rate: Any = None


class EmployeeReportRequest(BaseModel):
    """One reporting run: input snapshots plus window, filters and ordering."""
    time_entries: List[TimeEntryIn] = Field(default_factory=list)
    service_tickets: List[ServiceTicketIn] = Field(default_factory=list)
    employees: List[EmployeeProfileIn] = Field(default_factory=list)
    period: str = Field("all_time", description="Preset name, 'custom' or 'all_time'")
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    today: Optional[datetime.date] = Field(None, description="Reference day for presets (defaults to today)")
    employee_id: Optional[str] = None
    department: Optional[str] = None
    sort_field: str = "total_hours"
    sort_direction: Literal["asc", "desc"] = "desc"

    model_config = {"json_schema_extra": {
        "example": {
            "time_entries": [
                {"id": "te-1", "user_id": "u-1", "date": "2023-01-05", "hours": 4,
                 "billable": True, "rate_type": "Shop Time", "customer_id": "c-1"},
                {"id": "te-2", "user_id": "u-1", "date": "2023-01-05", "hours": 4,
                 "billable": True, "rate_type": "Field Time", "customer_id": "c-1"},
            ],
            "service_tickets": [
                {"date": "2023-01-05", "user_id": "u-1", "customer_id": "c-1", "total_hours": 6},
            ],
            "employees": [
                {"user_id": "u-1", "department": "Automation", "rt_rate": 110,
                 "ft_rate": 140, "shop_pay_rate": 25, "field_pay_rate": 30},
            ],
            "period": "custom",
            "start_date": "2023-01-01",
            "end_date": "2023-01-31",
        }
    }}
