# backend/shelfkeep/routes/system.py
"""
System health endpoints.

/health is a liveness probe: it never touches the database and is exempt
from rate limiting. /health/ready also checks datastore connectivity.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from shelfkeep.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial round trip.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1")).scalar()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    return {"status": "OK", "time": to_utc_z(utcnow())}


@system_bp.get("/health/ready")
def readiness():
    database = check_database_health()
    if database["status"] != "healthy":
        return {"status": "UNAVAILABLE", "database": database}, 503
    return {"status": "OK", "database": database}
