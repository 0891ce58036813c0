"""
app.py — Flask entry point for the plot tracking application.

Initializes the Flask app, registers all route blueprints and calls
init_db() and seed_defaults() on startup.

Configuration keys (overridable through test_config):
- DATABASE: sqlite path (else PLOT_DB_PATH env var, else data/plots.db)
- BACKUP_DIR: backup directory (else PLOT_BACKUP_DIR env var, else backups/)
- PLOT_METRICS_CLAMP_DAP: report future plantings as day 0 instead of negative days
- SEED_DEMO_PLOTS: insert demo plots into an empty database

Run: python app.py → localhost:5000
"""

import logging
import os

from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect, generate_csrf

from database import init_db, seed_defaults
from routes.plots import plots_bp
from routes.dashboard import dashboard_bp
from routes.harvest import harvest_bp
from routes.export import export_bp
from routes.settings import settings_bp


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.secret_key = os.environ.get('SECRET_KEY', 'plot-tracker-local-app-secret-key')
    app.config['WTF_CSRF_CHECK_DEFAULT'] = True
    app.config['PLOT_METRICS_CLAMP_DAP'] = os.environ.get('PLOT_METRICS_CLAMP_DAP', '0') == '1'
    app.config['SEED_DEMO_PLOTS'] = False
    app.config['JSON_SORT_KEYS'] = False

    if test_config:
        app.config.update(test_config)

    CSRFProtect(app)

    # Initialize database and seed defaults
    with app.app_context():
        init_db()
        seed_defaults(demo=app.config['SEED_DEMO_PLOTS'])

    # Register blueprints
    app.register_blueprint(plots_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(harvest_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(settings_bp)

    @app.route('/api/csrf-token')
    def csrf_token():
        """Token to send back in the X-CSRFToken header on writes."""
        return jsonify({'success': True, 'csrf_token': generate_csrf()})

    @app.route('/health')
    def health():
        return jsonify({'success': True})

    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    app = create_app({'SEED_DEMO_PLOTS': os.environ.get('SEED_DEMO_PLOTS', '0') == '1'})
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
