# Overview: Health endpoint reporting database reachability and role catalogue bootstrap.

"""
System Routes

GET /api/health (no authentication)
- 200 healthy: every check passed
- 200 degraded: reachable, but `flask system init` has not been run
- 503 unhealthy: a check raised
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Permission, Role, RoleType, StockEntry, Warehouse
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _timed(name: str, probe) -> dict:
    """Run probe() -> (status, details) and attach its latency."""
    started = time.perf_counter()
    try:
        status, details = probe()
        result = {"status": status, "details": details}
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Health check %s failed", name)
        result = {"status": "unhealthy", "error": f"{name} check failed"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def _database_probe():
    return "healthy", {
        "warehouses": db.session.query(Warehouse).count(),
        "stock_entries": db.session.query(StockEntry).count(),
    }


def _roles_probe():
    present = {row.type for row in db.session.query(Role.type).all()}
    missing = sorted(rt.value for rt in RoleType if rt.value not in present)
    permission_count = db.session.query(Permission).count()

    details = {"missing_roles": missing, "permission_count": permission_count}
    if missing or not permission_count:
        return "degraded", details
    return "healthy", details


@system_bp.get("/health")
def health():
    started = time.perf_counter()
    checks = {
        "database": _timed("database", _database_probe),
        "roles": _timed("roles", _roles_probe),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
    }, http_status
