"""
routes/settings.py — Administration routes.

Provides:
- GET  /settings/backups        — List database backups
- POST /settings/backup/create  — Create a manual backup
- POST /settings/backup/restore — Restore from backup (JSON: {"filename": ...})
"""

from flask import Blueprint, current_app, jsonify, request

from utils.backup import backup_db, list_backups, restore_db

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


@settings_bp.route('/backups')
def backups():
    """List backups, newest first."""
    return jsonify({'success': True, 'backups': list_backups()})


@settings_bp.route('/backup/create', methods=['POST'])
def backup_create():
    """Create a manual backup."""
    filename = backup_db('manual')
    if not filename:
        return jsonify({'success': False, 'error': 'Backup failed'}), 500
    current_app.logger.info("Manual backup created: %s", filename)
    return jsonify({'success': True, 'filename': filename})


@settings_bp.route('/backup/restore', methods=['POST'])
def backup_restore():
    """Restore the database from a backup file."""
    data = request.get_json(silent=True) or {}
    filename = (data.get('filename') or '').strip()
    if not filename:
        return jsonify({'success': False, 'error': 'Backup file not specified'}), 400

    # Keep the current state before overwriting it
    backup_db('pre_restore')

    if not restore_db(filename):
        return jsonify({'success': False, 'error': 'Restore failed'}), 400
    current_app.logger.warning("Database restored from %s", filename)
    return jsonify({'success': True})
