"""
Timesheet Reporting API
FastAPI backend exposing the employee revenue / cost reconciliation report.
Input snapshots are posted by the persistence layer; the API holds no database.
"""
import os
import time
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.report_routes import router as report_router
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware
from app.services.perf_monitor import tracker as perf_tracker

# Load .env file automatically in dev (no-op if the file is missing)
load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("timesheet-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()

app = FastAPI(
    title="Timesheet Reporting API",
    version="1.0.0",
    description="Revenue / cost reconciliation of time entries against service tickets",
)


# ---------------------------------------------------------------------------
# Security Headers Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# ---------------------------------------------------------------------------
# CORS: restricted to allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:5173"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

app.include_router(report_router)


@app.get("/health")
async def health_check():
    return {"status": "active", "version": app.version}


@app.get("/metrics")
async def metrics():
    """
    Report-generation metrics sourced from the in-process PerformanceTracker.
    """
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
