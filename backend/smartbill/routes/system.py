# backend/smartbill/routes/system.py
"""
System health endpoint.

Reports database reachability and login-session bookkeeping so a deployment
probe can tell a dead database from a healthy but idle service.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Invoice, Product, Store, StoreSession
from smartbill.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        product_count = db.session.query(Product).count()
        invoice_count = db.session.query(Invoice).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "products": product_count,
                "invoices": invoice_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_health() -> dict:
    """Count live login sessions and expired ones still awaiting cleanup."""
    start_time = time.time()
    try:
        now = utcnow()
        live = db.session.query(StoreSession).filter(
            StoreSession.revoked_at.is_(None),
            StoreSession.expires_at >= now,
        ).count()
        expired = db.session.query(StoreSession).filter(
            StoreSession.revoked_at.is_(None),
            StoreSession.expires_at < now,
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": live,
                "expired_pending_cleanup": expired,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session store error"
        }


@system_bp.get("/health")
def health():
    """
    Liveness plus dependency checks.

    Returns:
    - 200: all checks healthy
    - 503: at least one check unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_health()

    all_checks = [database_health, session_health]
    unhealthy = any(check["status"] == "unhealthy" for check in all_checks)

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "sessions": session_health,
        }
    }

    return response, 503 if unhealthy else 200
