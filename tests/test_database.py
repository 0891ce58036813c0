"""
tests/test_database.py — Tests for plot storage, lifecycle updates and the
harvest accumulation repair script.
"""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from app import create_app
from database import (
    create_harvest_log, create_plot, get_db_path, get_harvest_logs, get_plot,
    get_plots, init_db, record_harvest, seed_defaults, start_next_cycle,
    update_harvest_log, update_plot
)
from models import PlotStatus


@pytest.fixture
def app(tmp_path):
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'DATABASE': db_path,
        'BACKUP_DIR': str(tmp_path / 'backups'),
    })
    with app.app_context():
        yield app
    os.close(db_fd)
    os.unlink(db_path)


def new_plot(**overrides):
    data = {
        'name': 'Plot A',
        'planting_date': date(2025, 1, 1),
        'days_to_maturity': 135,
        'days_to_open_netting': 75,
    }
    data.update(overrides)
    plot_id, error = create_plot(data)
    assert error is None
    return plot_id


def test_db_path_from_config(app):
    assert get_db_path() == app.config['DATABASE']


def test_db_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('PLOT_DB_PATH', str(tmp_path / 'other.db'))
    assert get_db_path() == str(tmp_path / 'other.db')


def test_init_db_is_idempotent(app):
    init_db()
    init_db()
    assert get_plots() == []


def test_seed_demo_plots_once(app):
    seed_defaults(demo=True)
    seed_defaults(demo=True)
    assert [p.name for p in get_plots()] == ['Plot A', 'Plot B', 'Plot C']


def test_seed_without_demo_does_nothing(app):
    seed_defaults()
    assert get_plots() == []


def test_create_requires_name(app):
    plot_id, error = create_plot({'planting_date': date(2025, 1, 1)})
    assert plot_id is None
    assert error == "Plot name is required."


def test_create_stores_defaults(app):
    plot = get_plot(new_plot())
    assert plot.status is PlotStatus.PLANTED
    assert plot.current_cycle == 1
    assert plot.expected_harvest_date == date(2025, 5, 16)
    assert plot.netting_open_date == date(2025, 3, 17)
    assert plot.actual_harvest_date is None


def test_update_unknown_plot(app):
    assert update_plot(999, {'notes': 'x'}) == (False, "Plot not found.")


def test_record_harvest_twice_accumulates(app):
    plot_id = new_plot()
    record_harvest(plot_id, 10, date(2025, 5, 20))
    plot, error = record_harvest(plot_id, 2.5, date(2025, 5, 27))
    assert error is None
    assert plot.harvest_amount_kg == 2.5
    assert plot.total_harvested_kg == 12.5
    assert plot.actual_harvest_date == date(2025, 5, 27)


def test_concurrent_harvests_all_accumulate(app):
    plot_id = new_plot()

    def harvest_once(_):
        with app.app_context():
            plot, error = record_harvest(plot_id, 1.5)
            return error

    with ThreadPoolExecutor(max_workers=8) as pool:
        errors = list(pool.map(harvest_once, range(20)))

    assert errors == [None] * 20
    assert get_plot(plot_id).total_harvested_kg == pytest.approx(30.0)


def test_record_harvest_over_text_total(app):
    plot_id = new_plot()
    update_plot(plot_id, {'total_harvested_kg': ''})
    plot, _ = record_harvest(plot_id, 4)
    assert plot.total_harvested_kg == 4


def test_record_harvest_missing_plot(app):
    assert record_harvest(999, 1) == (None, "Plot not found.")


def test_start_next_cycle(app):
    plot_id = new_plot(notes='first')
    record_harvest(plot_id, 8, date(2025, 5, 20))
    plot, error = start_next_cycle(plot_id, date(2025, 6, 1), 100, 50)
    assert error is None
    assert plot.current_cycle == 2
    assert plot.status is PlotStatus.PLOT_PREPARATION
    assert plot.planting_date == date(2025, 6, 1)
    assert plot.expected_harvest_date == date(2025, 9, 9)
    assert plot.total_harvested_kg == 8
    assert plot.notes == 'first'


def test_harvest_logs_filtered_by_cycle(app):
    plot_id = new_plot()
    for cycle, day in ((1, 20), (2, 3), (1, 10)):
        log_id, error = create_harvest_log({
            'plot_id': plot_id, 'cycle_number': cycle,
            'harvest_date': date(2025, 5, day), 'grade_a_kg': 1.0,
        })
        assert error is None
    assert [log.harvest_date.day for log in get_harvest_logs(plot_id, 1)] == [10, 20]
    assert [log.cycle_number for log in get_harvest_logs(plot_id)] == [1, 1, 2]


def test_harvest_log_requires_plot(app):
    assert create_harvest_log({'plot_id': 42, 'cycle_number': 1}) == (None, "Plot not found.")


def test_harvest_log_update_keeps_plot(app):
    plot_id = new_plot()
    other_id = new_plot(name='Plot B')
    log_id, _ = create_harvest_log({
        'plot_id': plot_id, 'cycle_number': 1, 'harvest_date': date(2025, 5, 1),
    })
    ok, _ = update_harvest_log(log_id, {'plot_id': other_id, 'grade_b_kg': 3.0})
    assert ok
    assert get_harvest_logs(other_id) == []
    assert get_harvest_logs(plot_id)[0].grade_b_kg == 3.0


# ========================================
# Accumulation repair script
# ========================================

class TestFixHarvestAccumulation:

    def test_report_only(self, app, capsys):
        from scripts.fix_harvest_accumulation import fix_harvest_accumulation

        broken_id = new_plot(current_cycle=3, harvest_amount_kg=20, total_harvested_kg=20)
        new_plot(name='Fine', current_cycle=2, harvest_amount_kg=20, total_harvested_kg=45)

        assert fix_harvest_accumulation() == [(broken_id, 60.0)]
        assert get_plot(broken_id).total_harvested_kg == 20
        assert '1 plot(s) with broken accumulation.' in capsys.readouterr().out

    def test_apply(self, app):
        from scripts.fix_harvest_accumulation import fix_harvest_accumulation

        broken_id = new_plot(current_cycle=2, harvest_amount_kg=15, total_harvested_kg=15)
        fix_harvest_accumulation(apply=True)
        assert get_plot(broken_id).total_harvested_kg == 30
        backups = os.listdir(app.config['BACKUP_DIR'])
        assert any('pre_accumulation_fix' in name for name in backups)
