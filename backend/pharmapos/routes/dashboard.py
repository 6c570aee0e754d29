# Overview: Flask API route for the admin dashboard summary.

# backend/pharmapos/routes/dashboard.py
"""
Dashboard route.

GET /api/dashboard (admin)

Query params (override config):
- windowDays: int in 1..36500, only sales in the last N days count toward the top product
- threshold: int >= 0, products at or below this quantity are low stock
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..services.dashboard_service import load_dashboard
from ..services.stock_ledger import LedgerError, get_stock_ledger

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")

# A century of sales; anything larger overflows datetime arithmetic
MAX_WINDOW_DAYS = 36500


def _int_arg(name: str, default, minimum: int, maximum: int | None = None):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be <= {maximum}")
    return value


@dashboard_bp.get("")
@require_auth
@require_admin
def dashboard_route():
    try:
        window_days = _int_arg("windowDays", current_app.config.get("DASHBOARD_SALES_WINDOW_DAYS"), 1, MAX_WINDOW_DAYS)
        threshold = _int_arg("threshold", current_app.config.get("LOW_STOCK_THRESHOLD", 5), 0)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = load_dashboard(
            get_stock_ledger(),
            low_stock_threshold=threshold,
            window_days=window_days,
        )
    except LedgerError:
        current_app.logger.exception("Failed to load dashboard")
        return jsonify({"error": "Database error while loading dashboard"}), 503

    return jsonify(result.to_dict()), 200
