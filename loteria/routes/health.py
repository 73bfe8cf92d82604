"""Health check routes."""

from __future__ import annotations

from flask import Blueprint, current_app

from loteria.utils.responses import ok

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health_check():
    """Health check endpoint."""

    return ok({"status": "ok", "db_backend": current_app.config.get("DB_BACKEND")})
