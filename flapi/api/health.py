"""Health check endpoints."""
import datetime
import hmac
import os
import platform
import time

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from flapi.core.db import db

bp = Blueprint("health", __name__)

_STARTED_AT = time.monotonic()


def _database_check() -> dict:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return {"name": "Database connection", "status": "error", "message": str(exc.__class__.__name__), "isCached": False}
    return {"name": "Database connection", "status": "ok", "message": "Connected successfully", "isCached": False}


@bp.route("/")
def index():
    return jsonify({"hello": "world"})


@bp.route("/health")
def health_check():
    """Run the health checks; 200 when healthy, 503 otherwise.

    When ``HEALTH_SECRET`` is configured the caller must send it in
    ``X-Monitoring-Secret``.
    """
    cfg = current_app.config["APP_CONFIG"]
    if cfg.health_secret:
        provided = request.headers.get("X-Monitoring-Secret", "")
        if not hmac.compare_digest(provided.encode("utf-8"), cfg.health_secret.encode("utf-8")):
            return jsonify({"message": "Unauthorized access"}), 401

    checks = [_database_check()]
    healthy = all(check["status"] == "ok" for check in checks)
    report = {
        "isHealthy": healthy,
        "status": "ok" if healthy else "error",
        "finishedAt": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "debugInfo": {
            "pid": os.getpid(),
            "ppid": os.getppid(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "version": platform.python_version(),
            "platform": platform.system().lower(),
        },
        "checks": checks,
    }
    return jsonify(report), 200 if healthy else 503


@bp.route("/ready")
def readiness_check():
    """Readiness check endpoint."""
    return ("ready", 200, {"Content-Type": "text/plain"})
