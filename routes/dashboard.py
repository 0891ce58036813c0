"""
routes/dashboard.py — Portfolio dashboard figures.

Provides:
- GET /api/dashboard — completed cycles, total harvest, per-status counts and
  alert counts across all plots (?date=YYYY-MM-DD to change the reference date)
"""

from dataclasses import asdict

from flask import Blueprint, current_app, jsonify

from cycle_aggregator import summarize_portfolio
from database import get_plot_rows
from routes.plots import clamp_policy, reference_date

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('')
def index():
    """Dashboard summary (JSON API)."""
    try:
        today = reference_date()
    except ValueError:
        return jsonify({'success': False, 'error': 'date must be YYYY-MM-DD'}), 400

    try:
        summary = summarize_portfolio(get_plot_rows(), today, clamp_policy())
        return jsonify({
            'success': True,
            'reference_date': today.isoformat(),
            'dashboard': asdict(summary),
        })
    except Exception as e:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({'success': False, 'error': str(e)}), 500
