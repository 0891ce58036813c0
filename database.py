"""
database.py — SQLite schema creation and database operations for plots.

Creates the plots and harvest_logs tables.
Uses WAL mode for concurrent read performance.

The database path is resolved from the Flask app config (DATABASE), then
the PLOT_DB_PATH environment variable, then data/plots.db.
"""

import sqlite3
import os
from datetime import date

from flask import current_app, has_app_context

from models import HarvestLog, Plot, PlotStatus, parse_kg
from plot_metrics import derived_dates

DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'plots.db')

PLOT_COLUMNS = (
    'name', 'location', 'crop_type', 'planting_date', 'days_to_maturity',
    'days_to_open_netting', 'expected_harvest_date', 'actual_harvest_date',
    'netting_open_date', 'status', 'current_cycle', 'harvest_amount_kg',
    'total_harvested_kg', 'polybag_count', 'notes',
)

HARVEST_LOG_COLUMNS = (
    'plot_id', 'cycle_number', 'harvest_date', 'grade_a_kg', 'grade_b_kg',
    'price_per_kg_grade_a', 'price_per_kg_grade_b', 'comments',
)


def get_db_path() -> str:
    """Get the plot database path from app config, environment or default."""
    if has_app_context() and current_app.config.get('DATABASE'):
        return current_app.config['DATABASE']
    return os.environ.get('PLOT_DB_PATH', DB_PATH)


def get_db():
    """Get a database connection with WAL mode and foreign keys enabled."""
    path = get_db_path()
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def _to_db(value):
    """Convert Python values to what sqlite stores."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, PlotStatus):
        return value.value
    return value


def init_db():
    """Create all tables and indexes if they don't exist."""
    conn = get_db()
    cursor = conn.cursor()

    # Table: plots
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS plots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            location TEXT NOT NULL DEFAULT '',
            crop_type TEXT NOT NULL DEFAULT '',
            planting_date TEXT NOT NULL,
            days_to_maturity INTEGER NOT NULL,
            days_to_open_netting INTEGER NOT NULL,
            expected_harvest_date TEXT,
            actual_harvest_date TEXT,
            netting_open_date TEXT,
            status TEXT NOT NULL DEFAULT 'planted',
            current_cycle INTEGER NOT NULL DEFAULT 1,
            harvest_amount_kg REAL DEFAULT 0,
            total_harvested_kg REAL DEFAULT 0,
            polybag_count INTEGER NOT NULL DEFAULT 0,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: harvest_logs
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS harvest_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            plot_id INTEGER NOT NULL REFERENCES plots(id) ON DELETE CASCADE,
            cycle_number INTEGER NOT NULL,
            harvest_date TEXT NOT NULL,
            grade_a_kg REAL NOT NULL DEFAULT 0,
            grade_b_kg REAL NOT NULL DEFAULT 0,
            price_per_kg_grade_a REAL NOT NULL DEFAULT 0,
            price_per_kg_grade_b REAL NOT NULL DEFAULT 0,
            comments TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_harvest_logs_plot_cycle
        ON harvest_logs(plot_id, cycle_number)
    """)

    conn.commit()
    conn.close()


def seed_defaults(demo=False):
    """Insert demo plots when asked and the table is empty. Idempotent."""
    if not demo:
        return
    conn = get_db()
    existing = conn.execute("SELECT COUNT(*) FROM plots").fetchone()[0]
    conn.close()
    if existing:
        return

    today = date.today()
    demo_plots = [
        ('Plot A', 'North field', 'ginger', 1200, 135, 75),
        ('Plot B', 'North field', 'ginger', 800, 135, 75),
        ('Plot C', 'Greenhouse', 'chili', 500, 90, 30),
    ]
    for offset, (name, location, crop, polybags, maturity, netting) in enumerate(demo_plots):
        create_plot({
            'name': name,
            'location': location,
            'crop_type': crop,
            'polybag_count': polybags,
            'planting_date': date.fromordinal(today.toordinal() - 40 * offset),
            'days_to_maturity': maturity,
            'days_to_open_netting': netting,
        })


# ========================================
# Plots
# ========================================

def get_plots():
    """Retrieve all plots as Plot objects."""
    conn = get_db()
    rows = conn.execute("SELECT * FROM plots ORDER BY name, id").fetchall()
    conn.close()
    return [Plot.from_row(row) for row in rows]


def get_plot_rows():
    """Retrieve all plots as raw rows (for callers that tolerate bad records)."""
    conn = get_db()
    rows = conn.execute("SELECT * FROM plots ORDER BY name, id").fetchall()
    conn.close()
    return rows


def get_plot(plot_id):
    """Retrieve a single plot by ID, or None."""
    conn = get_db()
    row = conn.execute("SELECT * FROM plots WHERE id = ?", (plot_id,)).fetchone()
    conn.close()
    if not row:
        return None
    return Plot.from_row(row)


def create_plot(data):
    """
    Insert a new plot.

    Args:
        data: validated dict (see utils.validators.validate_plot). Missing
              expected_harvest_date / netting_open_date default to the dates
              derived from planting_date and the durations.

    Returns:
        (plot_id, None) on success, (None, error_message) on failure.
    """
    values = dict(data)
    if not values.get('name'):
        return None, "Plot name is required."
    if not values.get('planting_date'):
        return None, "Planting date is required."

    expected, netting = derived_dates(
        values['planting_date'],
        values.get('days_to_maturity', 0),
        values.get('days_to_open_netting', 0),
    )
    if not values.get('expected_harvest_date'):
        values['expected_harvest_date'] = expected
    if not values.get('netting_open_date'):
        values['netting_open_date'] = netting
    values.setdefault('status', PlotStatus.PLANTED)
    values.setdefault('current_cycle', 1)
    values.setdefault('harvest_amount_kg', 0)
    values.setdefault('total_harvested_kg', 0)

    columns = [c for c in PLOT_COLUMNS if c in values]
    placeholders = ', '.join('?' for _ in columns)

    conn = get_db()
    try:
        cursor = conn.execute(
            f"INSERT INTO plots ({', '.join(columns)}) VALUES ({placeholders})",
            [_to_db(values[c]) for c in columns]
        )
        conn.commit()
        return cursor.lastrowid, None
    except sqlite3.IntegrityError as e:
        return None, f"Could not create plot: {e}"
    finally:
        conn.close()


def update_plot(plot_id, data):
    """
    Update the given columns of a plot.

    Returns:
        (True, None) on success, (False, error_message) on failure.
    """
    columns = [c for c in PLOT_COLUMNS if c in data]
    if not columns:
        return False, "Nothing to update."

    assignments = ', '.join(f"{c} = ?" for c in columns)
    conn = get_db()
    try:
        cursor = conn.execute(
            f"UPDATE plots SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            [_to_db(data[c]) for c in columns] + [plot_id]
        )
        conn.commit()
        if cursor.rowcount == 0:
            return False, "Plot not found."
        return True, None
    except sqlite3.IntegrityError as e:
        return False, f"Could not update plot: {e}"
    finally:
        conn.close()


def delete_plot(plot_id):
    """Delete a plot and its harvest logs. Returns True if a plot was deleted."""
    conn = get_db()
    try:
        conn.execute("DELETE FROM harvest_logs WHERE plot_id = ?", (plot_id,))
        cursor = conn.execute("DELETE FROM plots WHERE id = ?", (plot_id,))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def record_harvest(plot_id, amount_kg, harvest_date=None):
    """
    Record the current cycle's harvest on a plot.

    The amount becomes harvest_amount_kg and is added to total_harvested_kg
    in a single UPDATE, so concurrent recordings all accumulate.
    actual_harvest_date defaults to today and the plot moves to 'harvesting'.

    Returns:
        (Plot, None) on success, (None, error_message) on failure.
    """
    amount = parse_kg(amount_kg)
    conn = get_db()
    try:
        cursor = conn.execute(
            """UPDATE plots
               SET harvest_amount_kg = ?,
                   total_harvested_kg = COALESCE(total_harvested_kg, 0) + ?,
                   actual_harvest_date = ?,
                   status = ?,
                   updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (amount, amount, _to_db(harvest_date or date.today()),
             PlotStatus.HARVESTING.value, plot_id)
        )
        conn.commit()
        if cursor.rowcount == 0:
            return None, "Plot not found."
    finally:
        conn.close()
    return get_plot(plot_id), None


def start_next_cycle(plot_id, planting_date, days_to_maturity, days_to_open_netting,
                     polybag_count=None, notes=None):
    """
    Reset a plot for its next planting cycle.

    current_cycle is incremented, the status goes back to plot_preparation,
    the per-cycle harvest fields are cleared and the projected dates are
    derived from the new planting. total_harvested_kg is kept.

    Returns:
        (Plot, None) on success, (None, error_message) on failure.
    """
    plot = get_plot(plot_id)
    if not plot:
        return None, "Plot not found."

    expected, netting = derived_dates(planting_date, days_to_maturity, days_to_open_netting)
    changes = {
        'current_cycle': plot.current_cycle + 1,
        'status': PlotStatus.PLOT_PREPARATION,
        'planting_date': planting_date,
        'days_to_maturity': days_to_maturity,
        'days_to_open_netting': days_to_open_netting,
        'expected_harvest_date': expected,
        'netting_open_date': netting,
        'actual_harvest_date': None,
        'harvest_amount_kg': 0,
    }
    if polybag_count is not None:
        changes['polybag_count'] = polybag_count
    if notes is not None:
        changes['notes'] = notes

    ok, error = update_plot(plot_id, changes)
    if not ok:
        return None, error
    return get_plot(plot_id), None


# ========================================
# Harvest logs
# ========================================

def get_harvest_logs(plot_id, cycle_number=None):
    """Retrieve harvest logs for a plot, optionally for one cycle."""
    conn = get_db()
    if cycle_number is not None:
        rows = conn.execute(
            """SELECT * FROM harvest_logs WHERE plot_id = ? AND cycle_number = ?
               ORDER BY harvest_date, id""",
            (plot_id, cycle_number)
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM harvest_logs WHERE plot_id = ? ORDER BY cycle_number, harvest_date, id",
            (plot_id,)
        ).fetchall()
    conn.close()
    return [HarvestLog.from_row(row) for row in rows]


def get_harvest_log(log_id):
    """Retrieve a single harvest log, or None."""
    conn = get_db()
    row = conn.execute("SELECT * FROM harvest_logs WHERE id = ?", (log_id,)).fetchone()
    conn.close()
    if not row:
        return None
    return HarvestLog.from_row(row)


def create_harvest_log(data):
    """
    Insert a harvest event.

    Returns:
        (log_id, None) on success, (None, error_message) on failure.
    """
    if not get_plot(data.get('plot_id')):
        return None, "Plot not found."

    columns = [c for c in HARVEST_LOG_COLUMNS if c in data]
    placeholders = ', '.join('?' for _ in columns)
    conn = get_db()
    try:
        cursor = conn.execute(
            f"INSERT INTO harvest_logs ({', '.join(columns)}) VALUES ({placeholders})",
            [_to_db(data[c]) for c in columns]
        )
        conn.commit()
        return cursor.lastrowid, None
    except sqlite3.IntegrityError as e:
        return None, f"Could not record harvest log: {e}"
    finally:
        conn.close()


def update_harvest_log(log_id, data):
    """Update a harvest log. Returns (True, None) or (False, error_message)."""
    columns = [c for c in HARVEST_LOG_COLUMNS if c in data and c != 'plot_id']
    if not columns:
        return False, "Nothing to update."

    assignments = ', '.join(f"{c} = ?" for c in columns)
    conn = get_db()
    try:
        cursor = conn.execute(
            f"UPDATE harvest_logs SET {assignments} WHERE id = ?",
            [_to_db(data[c]) for c in columns] + [log_id]
        )
        conn.commit()
        if cursor.rowcount == 0:
            return False, "Harvest log not found."
        return True, None
    finally:
        conn.close()


def delete_harvest_log(log_id):
    """Delete a harvest log. Returns True if a row was deleted."""
    conn = get_db()
    try:
        cursor = conn.execute("DELETE FROM harvest_logs WHERE id = ?", (log_id,))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()
