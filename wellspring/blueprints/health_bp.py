"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — dependency status (DB, chapter store, gateways)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from wellspring.models import db
from wellspring.workflow.store import EXTENSION_KEY

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Chapter store ────────────────────────────────────────────────
    store = current_app.extensions.get(EXTENSION_KEY)
    if store is None:
        checks["chapter_store"] = {"status": "error", "detail": "not initialised"}
        overall = False
    else:
        checks["chapter_store"] = {
            "status": "ok" if store.loaded else "not_loaded",
            "chapters": len(store.chapters),
        }
        dispatcher = store.dispatcher
        board = getattr(dispatcher, "board", None)
        email = getattr(dispatcher, "email", None)
        # Gateways are optional; an unconfigured one doesn't fail health
        checks["monday"] = {"status": "configured" if board and board.is_configured() else "skipped"}
        checks["gmail"] = {"status": "connected" if email and email.is_connected() else "skipped"}

    checks["app"] = {
        "name": "Wellspring chapter workflow",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
