"""
utils/backup.py — Database backup and restore operations.

Copies the .db file to the backup directory with timestamped filenames.
Backup triggers: before starting a plot's next cycle, on export, manual from Settings.
Format: plots_YYYYMMDD_HHMMSS_{reason}.db

The backup directory comes from the Flask app config (BACKUP_DIR), then the
PLOT_BACKUP_DIR environment variable, then backups/ next to the app.
"""

import logging
import os
import shutil
from datetime import datetime

from flask import current_app, has_app_context

from database import get_db_path

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_BACKUP_DIR = os.path.join(BASE_DIR, 'backups')
BACKUP_PREFIX = 'plots_'


def get_backup_dir():
    """Resolve the backup directory."""
    if has_app_context() and current_app.config.get('BACKUP_DIR'):
        return current_app.config['BACKUP_DIR']
    return os.environ.get('PLOT_BACKUP_DIR', DEFAULT_BACKUP_DIR)


def backup_db(reason='manual'):
    """
    Copy the current database to the backup directory with a timestamped filename.

    Args:
        reason: Short tag for the backup trigger (e.g., 'manual', 'pre_next_cycle', 'export').

    Returns:
        The filename of the created backup, or None on failure.
    """
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    db_path = get_db_path()
    if not os.path.exists(db_path):
        return None

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
    # Sanitize reason string
    safe_reason = reason.replace(' ', '_').replace('/', '_')[:30]
    filename = f'{BACKUP_PREFIX}{timestamp}_{safe_reason}.db'
    dest = os.path.join(backup_dir, filename)

    try:
        shutil.copy2(db_path, dest)
        return filename
    except OSError as e:
        logger.warning("Backup '%s' failed: %s", reason, e)
        return None


def list_backups():
    """
    List all backup files in the backup directory.

    Returns:
        List of dicts with keys: filename, timestamp, size_bytes, size_display, reason.
        Sorted by timestamp descending (newest first).
    """
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    backups = []
    for f in os.listdir(backup_dir):
        if f.startswith(BACKUP_PREFIX) and f.endswith('.db'):
            size_bytes = os.stat(os.path.join(backup_dir, f)).st_size

            # Format: plots_YYYYMMDD_HHMMSS_micro_reason.db
            parts = f[len(BACKUP_PREFIX):-len('.db')].split('_')
            timestamp_str = ''
            reason = ''
            if len(parts) >= 3:
                date_part, time_part = parts[0], parts[1]
                timestamp_str = f'{date_part[:4]}-{date_part[4:6]}-{date_part[6:8]} {time_part[:2]}:{time_part[2:4]}:{time_part[4:6]}'
                reason = '_'.join(parts[3:])

            if size_bytes < 1024:
                size_display = f'{size_bytes} B'
            elif size_bytes < 1024 * 1024:
                size_display = f'{size_bytes / 1024:.1f} KB'
            else:
                size_display = f'{size_bytes / (1024 * 1024):.1f} MB'

            backups.append({
                'filename': f,
                'timestamp': timestamp_str,
                'size_bytes': size_bytes,
                'size_display': size_display,
                'reason': reason,
            })

    # Sort newest first
    backups.sort(key=lambda b: b['filename'], reverse=True)
    return backups


def restore_db(filename):
    """
    Replace the current database with a backup file.

    DANGEROUS: This overwrites the current database entirely.

    Returns:
        True on success, False on failure.
    """
    # Only bare backup filenames are accepted
    if os.path.basename(filename) != filename:
        return False
    if not filename.startswith(BACKUP_PREFIX) or not filename.endswith('.db'):
        return False

    backup_path = os.path.join(get_backup_dir(), filename)
    if not os.path.exists(backup_path):
        return False

    db_path = get_db_path()
    try:
        # Stale WAL files would be replayed over the restored copy
        for suffix in ('-wal', '-shm'):
            if os.path.exists(db_path + suffix):
                os.remove(db_path + suffix)
        shutil.copy2(backup_path, db_path)
        return True
    except OSError as e:
        logger.error("Restore from '%s' failed: %s", filename, e)
        return False
