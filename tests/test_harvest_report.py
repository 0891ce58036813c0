"""
tests/test_harvest_report.py — Tests for harvest log totals, reports and the
accumulation check.
"""

from datetime import date

import pytest

from harvest_report import (
    ACCUMULATION_BROKEN,
    ACCUMULATION_OK,
    ACCUMULATION_OK_SINGLE,
    ACCUMULATION_REVIEW,
    build_harvest_report,
    check_accumulation,
    summarize_logs,
    totals_by_cycle,
)
from models import HarvestLog, Plot, PlotStatus


def make_log(cycle, a_kg, b_kg, a_price=10.0, b_price=5.0, harvest_date=date(2025, 5, 20), log_id=None):
    return HarvestLog(
        id=log_id,
        plot_id=1,
        cycle_number=cycle,
        harvest_date=harvest_date,
        grade_a_kg=a_kg,
        grade_b_kg=b_kg,
        price_per_kg_grade_a=a_price,
        price_per_kg_grade_b=b_price,
    )


def make_plot(**overrides):
    fields = dict(
        id=1,
        name='Plot A',
        planting_date=date(2025, 1, 1),
        days_to_maturity=135,
        days_to_open_netting=75,
        status=PlotStatus.HARVESTING,
        current_cycle=2,
        harvest_amount_kg=30,
        total_harvested_kg=45,
    )
    fields.update(overrides)
    return Plot(**fields)


class TestSummaries:

    def test_summarize_logs(self):
        totals = summarize_logs([make_log(1, 10, 5), make_log(1, 2, 3)])
        assert totals['events'] == 2
        assert totals['grade_a_kg'] == pytest.approx(12)
        assert totals['grade_b_kg'] == pytest.approx(8)
        assert totals['total_kg'] == pytest.approx(20)
        assert totals['grade_a_value'] == pytest.approx(120)
        assert totals['grade_b_value'] == pytest.approx(40)
        assert totals['total_value'] == pytest.approx(160)

    def test_summarize_empty(self):
        assert summarize_logs([])['total_kg'] == 0

    def test_rows_with_text_amounts(self):
        rows = [{'id': 1, 'plot_id': 1, 'cycle_number': '1', 'harvest_date': '2025-05-01',
                 'grade_a_kg': '4.5', 'grade_b_kg': '', 'price_per_kg_grade_a': '2',
                 'price_per_kg_grade_b': None}]
        totals = summarize_logs(rows)
        assert totals['total_kg'] == pytest.approx(4.5)
        assert totals['total_value'] == pytest.approx(9.0)

    def test_totals_by_cycle_ordered(self):
        cycles = totals_by_cycle([make_log(2, 1, 1), make_log(1, 3, 0), make_log(2, 0, 2)])
        assert list(cycles.keys()) == [1, 2]
        assert cycles[2]['kg'] == pytest.approx(4)
        assert cycles[2]['events'] == 2


class TestHarvestReport:

    def test_report_for_current_cycle_reconciles(self):
        logs = [
            make_log(1, 10, 5),
            make_log(2, 20, 5, harvest_date=date(2025, 5, 21)),
            make_log(2, 4, 1, harvest_date=date(2025, 5, 20)),
        ]
        report = build_harvest_report(make_plot(), logs, 2, date(2025, 6, 1))
        assert report['cycle'] == 2
        assert [log['harvest_date'] for log in report['logs']] == ['2025-05-20', '2025-05-21']
        assert report['totals']['total_kg'] == pytest.approx(30)
        assert report['reconciliation']['cycle_matches'] is True
        assert report['reconciliation']['total_matches'] is True
        assert report['cycles']['1']['kg'] == pytest.approx(15)
        assert report['metrics']['completed_cycles'] == 2

    def test_report_flags_mismatch(self):
        report = build_harvest_report(make_plot(total_harvested_kg=100), [make_log(2, 30, 0)], 2, date(2025, 6, 1))
        assert report['reconciliation']['total_matches'] is False

    def test_past_cycle_has_no_cycle_reconciliation(self):
        report = build_harvest_report(make_plot(), [make_log(1, 10, 5)], 1, date(2025, 6, 1))
        assert 'cycle_matches' not in report['reconciliation']
        assert report['totals']['events'] == 1


class TestAccumulationCheck:

    def test_broken_multi_cycle(self):
        plot = make_plot(current_cycle=3, harvest_amount_kg='20', total_harvested_kg='20')
        assert check_accumulation(plot) == (ACCUMULATION_BROKEN, 60.0)

    def test_single_cycle_ok(self):
        plot = make_plot(current_cycle=1, harvest_amount_kg=20, total_harvested_kg=20)
        assert check_accumulation(plot) == (ACCUMULATION_OK_SINGLE, None)

    def test_accumulating_ok(self):
        plot = make_plot(current_cycle=2, harvest_amount_kg=20, total_harvested_kg=45)
        assert check_accumulation(plot) == (ACCUMULATION_OK, None)

    def test_review(self):
        plot = make_plot(current_cycle=2, harvest_amount_kg=20, total_harvested_kg=5)
        assert check_accumulation(plot) == (ACCUMULATION_REVIEW, None)

    def test_multi_cycle_without_harvest_needs_review(self):
        plot = make_plot(current_cycle=2, harvest_amount_kg='', total_harvested_kg=None)
        assert check_accumulation(plot) == (ACCUMULATION_REVIEW, None)
