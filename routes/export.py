"""
routes/export.py — Excel export routes.

Provides:
- GET /export/harvest/<plot_id>/<cycle> — Download the harvest report of a plot cycle

Auto-backup is triggered before every export.
"""

from flask import Blueprint, jsonify, send_file

from routes.plots import clamp_policy
from utils.backup import backup_db
from utils.export import generate_harvest_excel

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/harvest/<int:plot_id>/<int:cycle>')
def export_harvest(plot_id, cycle):
    """Export one plot cycle's harvest report as Excel."""
    # Auto-backup before export
    backup_db('export')

    buffer, filename = generate_harvest_excel(plot_id, cycle, clamp_days_since_planting=clamp_policy())
    if not buffer:
        return jsonify({'success': False, 'error': 'No harvest data to export for this cycle'}), 404

    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
