# backend/supermart/routes/system.py
"""
System health endpoint.

Reports database reachability, the active storage backend and advisory
status for deployment debugging.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..services.advisory_service import get_advisory_board
from ..services.session_service import get_session_registry
from supermart.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    overall = "healthy" if database["status"] == "healthy" else "unhealthy"
    body = {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "storage_backend": current_app.config["STORAGE_BACKEND"],
        "checks": {
            "database": database,
            "sessions": {"open": len(get_session_registry())},
            "advisory": {
                "status": get_advisory_board().status(),
                "configured": bool(current_app.config.get("GEMINI_API_KEY")),
            },
        },
    }
    return body, 200 if overall == "healthy" else 503
