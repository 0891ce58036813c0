"""
harvest_report.py — Harvest log totals and reconciliation against plot metrics.

Provides:
- summarize_logs: grade A/B kg and value totals for a list of harvest events
- totals_by_cycle: the same figures grouped per cycle
- build_harvest_report: report for one plot cycle, reconciled with the
  plot's recorded harvest amounts
- check_accumulation: detects plots whose cumulative total was never
  accumulated across cycles

Amounts are compared with a small tolerance since they are stored as text
or REAL.
"""

from collections import OrderedDict

from models import HarvestLog, parse_int, parse_kg
from plot_metrics import compute_metrics

KG_TOLERANCE = 0.01

ACCUMULATION_OK_SINGLE = 'ok_single_cycle'
ACCUMULATION_OK = 'ok_accumulating'
ACCUMULATION_BROKEN = 'broken'
ACCUMULATION_REVIEW = 'review'


def _as_log(item):
    if isinstance(item, HarvestLog):
        return item
    return HarvestLog.from_row(item)


def summarize_logs(logs):
    """Grade totals for a list of harvest logs."""
    totals = {
        'events': 0,
        'grade_a_kg': 0.0,
        'grade_b_kg': 0.0,
        'total_kg': 0.0,
        'grade_a_value': 0.0,
        'grade_b_value': 0.0,
        'total_value': 0.0,
    }
    for item in logs:
        log = _as_log(item)
        totals['events'] += 1
        totals['grade_a_kg'] += log.grade_a_kg
        totals['grade_b_kg'] += log.grade_b_kg
        totals['total_kg'] += log.total_kg
        totals['grade_a_value'] += log.grade_a_value
        totals['grade_b_value'] += log.grade_b_value
        totals['total_value'] += log.total_value
    return totals


def totals_by_cycle(logs):
    """{cycle_number: {'kg', 'value', 'events'}} ordered by cycle."""
    cycles = {}
    for item in logs:
        log = _as_log(item)
        entry = cycles.setdefault(log.cycle_number, {'kg': 0.0, 'value': 0.0, 'events': 0})
        entry['kg'] += log.total_kg
        entry['value'] += log.total_value
        entry['events'] += 1
    return OrderedDict(sorted(cycles.items()))


def build_harvest_report(plot, logs, cycle, reference_instant, clamp_days_since_planting=False):
    """
    Build the harvest report for one plot cycle.

    Args:
        plot: Plot snapshot.
        logs: all harvest logs of the plot (every cycle).
        cycle: cycle number the report is for.
        reference_instant: date used for the plot metrics.
        clamp_days_since_planting: day-count policy, as for compute_metrics.

    Returns:
        dict with plot, metrics, the cycle's logs and totals, per-cycle totals
        and a reconciliation block comparing logged kg with the plot record.
    """
    cycle = parse_int(cycle, default=1)
    all_logs = [_as_log(item) for item in logs]
    cycle_logs = [log for log in all_logs if log.cycle_number == cycle]
    cycle_logs.sort(key=lambda log: (log.harvest_date is None, log.harvest_date, log.id or 0))

    metrics = compute_metrics(plot, reference_instant, clamp_days_since_planting)
    cycle_totals = summarize_logs(cycle_logs)
    overall_totals = summarize_logs(all_logs)

    reconciliation = {
        'logged_all_cycles_kg': overall_totals['total_kg'],
        'recorded_total_kg': metrics.total_harvest_kg,
        'total_matches': abs(overall_totals['total_kg'] - metrics.total_harvest_kg) <= KG_TOLERANCE,
    }
    # The plot only carries the current cycle's amount
    if cycle == plot.current_cycle:
        reconciliation['logged_cycle_kg'] = cycle_totals['total_kg']
        reconciliation['recorded_cycle_kg'] = metrics.current_cycle_harvest_kg
        reconciliation['cycle_matches'] = (
            abs(cycle_totals['total_kg'] - metrics.current_cycle_harvest_kg) <= KG_TOLERANCE
        )

    return {
        'plot': plot.to_dict(),
        'cycle': cycle,
        'metrics': metrics.to_dict(),
        'logs': [log.to_dict() for log in cycle_logs],
        'totals': cycle_totals,
        'cycles': {str(k): v for k, v in totals_by_cycle(all_logs).items()},
        'reconciliation': reconciliation,
    }


def check_accumulation(plot):
    """
    Classify whether a plot's cumulative harvest total looks accumulated.

    Returns:
        (state, suggested_total) where suggested_total is only set for
        ACCUMULATION_BROKEN: the current harvest times the cycle number.
    """
    cycle = parse_int(plot.current_cycle, default=1)
    current = parse_kg(plot.harvest_amount_kg)
    total = parse_kg(plot.total_harvested_kg)
    same = abs(total - current) <= KG_TOLERANCE

    if cycle > 1 and same and current > 0:
        return ACCUMULATION_BROKEN, current * cycle
    if cycle == 1 and same:
        return ACCUMULATION_OK_SINGLE, None
    if total > current:
        return ACCUMULATION_OK, None
    return ACCUMULATION_REVIEW, None
