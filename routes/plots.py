"""
routes/plots.py — Plot API routes (per-plot cards).

Provides:
- GET    /api/plots                  — All plots with their metrics
- GET    /api/plots/<id>             — One plot with its metrics
- POST   /api/plots                  — Create a plot
- PUT    /api/plots/<id>             — Update a plot (partial)
- DELETE /api/plots/<id>             — Delete a plot and its harvest logs
- POST   /api/plots/<id>/harvest     — Record the current cycle's harvest
- POST   /api/plots/<id>/next-cycle  — Start the plot's next planting cycle

GET routes accept ?date=YYYY-MM-DD to compute metrics at another date.
"""

from datetime import date

from flask import Blueprint, current_app, jsonify, request

from database import (
    create_plot, delete_plot, get_plot, get_plot_rows, record_harvest,
    start_next_cycle, update_plot
)
from models import Plot, parse_date
from plot_metrics import compute_metrics, status_color, status_label
from utils.backup import backup_db
from utils.validators import validate_harvest, validate_next_cycle, validate_plot

plots_bp = Blueprint('plots', __name__, url_prefix='/api/plots')


# ========================================
# Helpers
# ========================================

def reference_date():
    """Reference date for metrics: ?date=YYYY-MM-DD, else today.

    Raises ValueError for a malformed date parameter.
    """
    return parse_date(request.args.get('date')) or date.today()


def clamp_policy():
    """Whether future plantings are reported as day 0 (app config)."""
    return bool(current_app.config.get('PLOT_METRICS_CLAMP_DAP', False))


def plot_payload(plot, today):
    """Plot card payload: record, metrics and status display."""
    payload = plot.to_dict()
    payload['metrics'] = compute_metrics(plot, today, clamp_policy()).to_dict()
    payload['status_label'] = status_label(plot.status)
    payload['status_color'] = status_color(plot.status)
    return payload


def _bad_date():
    return jsonify({'success': False, 'error': 'date must be YYYY-MM-DD'}), 400


# ========================================
# Plot CRUD
# ========================================

@plots_bp.route('', methods=['GET'])
def list_plots():
    """All plots with metrics (JSON API). Unreadable records are reported, not fatal."""
    try:
        today = reference_date()
    except ValueError:
        return _bad_date()

    try:
        plots = []
        invalid = []
        for row in get_plot_rows():
            try:
                plots.append(plot_payload(Plot.from_row(row), today))
            except (TypeError, ValueError, OverflowError) as e:
                current_app.logger.warning("Plot %s has unusable data: %s", row['id'], e)
                invalid.append(row['id'])
        return jsonify({
            'success': True,
            'reference_date': today.isoformat(),
            'plots': plots,
            'invalid_plot_ids': invalid,
        })
    except Exception as e:
        current_app.logger.exception("Failed to list plots")
        return jsonify({'success': False, 'error': str(e)}), 500


@plots_bp.route('/<int:plot_id>', methods=['GET'])
def get_plot_detail(plot_id):
    """A single plot with metrics (JSON API)."""
    try:
        today = reference_date()
    except ValueError:
        return _bad_date()

    try:
        plot = get_plot(plot_id)
        if not plot:
            return jsonify({'success': False, 'error': 'Plot not found'}), 404
        return jsonify({
            'success': True,
            'reference_date': today.isoformat(),
            'plot': plot_payload(plot, today),
        })
    except Exception as e:
        current_app.logger.exception("Failed to load plot %s", plot_id)
        return jsonify({'success': False, 'error': str(e)}), 500


@plots_bp.route('', methods=['POST'])
def create():
    """Create a plot from a JSON payload."""
    cleaned, errors = validate_plot(request.get_json(silent=True))
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    plot_id, error = create_plot(cleaned)
    if error:
        return jsonify({'success': False, 'error': error}), 400

    current_app.logger.info("Created plot %s (%s)", plot_id, cleaned['name'])
    return jsonify({'success': True, 'plot': plot_payload(get_plot(plot_id), date.today())}), 201


@plots_bp.route('/<int:plot_id>', methods=['PUT'])
def update(plot_id):
    """Update the supplied fields of a plot."""
    if not get_plot(plot_id):
        return jsonify({'success': False, 'error': 'Plot not found'}), 404

    cleaned, errors = validate_plot(request.get_json(silent=True), partial=True)
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    ok, error = update_plot(plot_id, cleaned)
    if not ok:
        return jsonify({'success': False, 'error': error}), 400

    return jsonify({'success': True, 'plot': plot_payload(get_plot(plot_id), date.today())})


@plots_bp.route('/<int:plot_id>', methods=['DELETE'])
def delete(plot_id):
    """Delete a plot and its harvest logs."""
    if not delete_plot(plot_id):
        return jsonify({'success': False, 'error': 'Plot not found'}), 404
    current_app.logger.info("Deleted plot %s", plot_id)
    return jsonify({'success': True})


# ========================================
# Lifecycle actions
# ========================================

@plots_bp.route('/<int:plot_id>/harvest', methods=['POST'])
def harvest(plot_id):
    """Record the current cycle's harvest and add it to the cumulative total."""
    cleaned, errors = validate_harvest(request.get_json(silent=True))
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    plot, error = record_harvest(plot_id, cleaned['amount_kg'], cleaned.get('harvest_date'))
    if error:
        status = 404 if error == "Plot not found." else 400
        return jsonify({'success': False, 'error': error}), status

    current_app.logger.info(
        "Harvest recorded on plot %s: %.1f kg (total %.1f kg)",
        plot_id, cleaned['amount_kg'], plot.to_dict()['total_harvested_kg']
    )
    return jsonify({'success': True, 'plot': plot_payload(plot, date.today())})


@plots_bp.route('/<int:plot_id>/next-cycle', methods=['POST'])
def next_cycle(plot_id):
    """Reset a plot for its next cycle. A backup is taken first."""
    if not get_plot(plot_id):
        return jsonify({'success': False, 'error': 'Plot not found'}), 404

    cleaned, errors = validate_next_cycle(request.get_json(silent=True))
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors), 'errors': errors}), 400

    backup_db('pre_next_cycle')

    plot, error = start_next_cycle(
        plot_id,
        cleaned['planting_date'],
        cleaned['days_to_maturity'],
        cleaned['days_to_open_netting'],
        polybag_count=cleaned.get('polybag_count'),
        notes=cleaned.get('notes'),
    )
    if error:
        return jsonify({'success': False, 'error': error}), 400

    current_app.logger.info("Plot %s started cycle %s", plot_id, plot.current_cycle)
    return jsonify({'success': True, 'plot': plot_payload(plot, date.today())})
