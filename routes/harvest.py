"""
routes/harvest.py — Harvest log and harvest report routes.

Provides:
- GET    /api/harvest-logs/plot/<plot_id>                — All logs of a plot
- GET    /api/harvest-logs/plot/<plot_id>/cycle/<cycle>  — Logs of one cycle
- POST   /api/harvest-logs                               — Record a harvest event
- PUT    /api/harvest-logs/<log_id>                      — Edit a harvest event
- DELETE /api/harvest-logs/<log_id>                      — Delete a harvest event
- GET    /api/harvest-report/<plot_id>/<cycle>           — Graded report for a cycle
"""

from flask import Blueprint, current_app, jsonify, request

from database import (
    create_harvest_log, delete_harvest_log, get_harvest_log, get_harvest_logs,
    get_plot, update_harvest_log
)
from harvest_report import build_harvest_report, summarize_logs
from routes.plots import clamp_policy, reference_date
from utils.validators import validate_harvest_log

harvest_bp = Blueprint('harvest', __name__, url_prefix='/api')


@harvest_bp.route('/harvest-logs/plot/<int:plot_id>')
def plot_logs(plot_id):
    """All harvest logs for a plot."""
    if not get_plot(plot_id):
        return jsonify({'success': False, 'error': 'Plot not found'}), 404
    logs = get_harvest_logs(plot_id)
    return jsonify({
        'success': True,
        'logs': [log.to_dict() for log in logs],
        'totals': summarize_logs(logs),
    })


@harvest_bp.route('/harvest-logs/plot/<int:plot_id>/cycle/<int:cycle>')
def cycle_logs(plot_id, cycle):
    """Harvest logs for one plot cycle."""
    if not get_plot(plot_id):
        return jsonify({'success': False, 'error': 'Plot not found'}), 404
    logs = get_harvest_logs(plot_id, cycle)
    return jsonify({
        'success': True,
        'logs': [log.to_dict() for log in logs],
        'totals': summarize_logs(logs),
    })


@harvest_bp.route('/harvest-logs', methods=['POST'])
def create_log():
    """Record a graded harvest event."""
    cleaned, errors = validate_harvest_log(request.get_json(silent=True))
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    log_id, error = create_harvest_log(cleaned)
    if error:
        status = 404 if error == "Plot not found." else 400
        return jsonify({'success': False, 'error': error}), status

    current_app.logger.info(
        "Harvest log %s recorded for plot %s cycle %s",
        log_id, cleaned['plot_id'], cleaned['cycle_number']
    )
    return jsonify({'success': True, 'log': get_harvest_log(log_id).to_dict()}), 201


@harvest_bp.route('/harvest-logs/<int:log_id>', methods=['PUT'])
def update_log(log_id):
    """Edit a harvest event. The plot it belongs to cannot change."""
    if not get_harvest_log(log_id):
        return jsonify({'success': False, 'error': 'Harvest log not found'}), 404

    cleaned, errors = validate_harvest_log(request.get_json(silent=True), partial=True)
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    ok, error = update_harvest_log(log_id, cleaned)
    if not ok:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'log': get_harvest_log(log_id).to_dict()})


@harvest_bp.route('/harvest-logs/<int:log_id>', methods=['DELETE'])
def delete_log(log_id):
    """Delete a harvest event."""
    if not delete_harvest_log(log_id):
        return jsonify({'success': False, 'error': 'Harvest log not found'}), 404
    return jsonify({'success': True})


@harvest_bp.route('/harvest-report/<int:plot_id>/<int:cycle>')
def harvest_report(plot_id, cycle):
    """Graded harvest report for one plot cycle, reconciled with the plot record."""
    try:
        today = reference_date()
    except ValueError:
        return jsonify({'success': False, 'error': 'date must be YYYY-MM-DD'}), 400

    plot = get_plot(plot_id)
    if not plot:
        return jsonify({'success': False, 'error': 'Plot not found'}), 404
    if cycle < 1 or cycle > plot.current_cycle:
        return jsonify({'success': False, 'error': f'Cycle must be between 1 and {plot.current_cycle}'}), 400

    try:
        report = build_harvest_report(plot, get_harvest_logs(plot_id), cycle, today, clamp_policy())
        return jsonify({'success': True, 'report': report})
    except Exception as e:
        current_app.logger.exception("Failed to build harvest report for plot %s", plot_id)
        return jsonify({'success': False, 'error': str(e)}), 500
