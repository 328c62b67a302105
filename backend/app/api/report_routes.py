"""
Report Routes — employee revenue / cost reconciliation.

POST /api/reports/employees  — reconcile posted snapshots into employee metrics
GET  /api/reports/periods    — resolved reporting windows for a reference day
"""
import time
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from app.models.report_schemas import EmployeeReportRequest
from app.services.perf_monitor import tracker as perf_tracker
from app.services.report_engine import EmployeeReportEngine
from app.services.reporting_periods import ALL_TIME, list_windows, resolve_window

router = APIRouter(prefix="/api/reports", tags=["Reports"])
logger = logging.getLogger("timesheet-report-routes")

_engine = EmployeeReportEngine()


@router.post("/employees")
def employee_report(body: EmployeeReportRequest, request: Request):
    """Reconcile time entries and service tickets for one reporting window."""
    report_id = getattr(request.state, "request_id", None)

    if body.period == ALL_TIME:
        start_date: Optional[date] = None
        end_date: Optional[date] = None
    else:
        try:
            window = resolve_window(body.period, body.today, body.start_date, body.end_date)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        start_date, end_date = window.start_date, window.end_date

    start = time.perf_counter()
    try:
        report = _engine.build_report(
            time_entries=[e.model_dump() for e in body.time_entries],
            service_tickets=[t.model_dump() for t in body.service_tickets],
            profiles=[p.model_dump() for p in body.employees],
            start_date=start_date,
            end_date=end_date,
            employee_id=body.employee_id,
            department=body.department,
            sort_field=body.sort_field,
            sort_direction=body.sort_direction,
        )
    except ValueError as e:
        perf_tracker.record_stage_error("EmployeeReportEngine.build_report")
        raise HTTPException(status_code=400, detail=str(e))
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    warnings = report["warnings"]
    perf_tracker.record_report_complete(duration_ms, warning_count=len(warnings))
    for warning in warnings:
        logger.warning(warning, extra={"report_id": report_id})
    logger.info(
        f"Employee report built: {len(report['employees'])} employees, {len(warnings)} warnings",
        extra={"report_id": report_id, "duration_ms": duration_ms},
    )

    report["period"] = body.period
    return report


@router.get("/periods")
def reporting_periods(today: Optional[date] = None):
    """List every preset window resolved against ``today`` (defaults to the server date)."""
    return {"periods": [w.to_dict() for w in list_windows(today)]}
