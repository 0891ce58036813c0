"""
cycle_aggregator.py — Portfolio totals across plots.

Runs each plot through plot_metrics.compute_metrics with one shared
reference instant and sums the results:
- total completed cycles
- total harvested kg (cumulative across cycles)

Plots are summed as given: a plot supplied twice counts twice. A plot
without a usable planting date still contributes its harvest and cycles.
An item that cannot be read as a plot at all is logged and skipped, and the
fold carries on.
"""

import logging
from collections import Counter

from models import CycleTotals, Plot, PlotStatus, PortfolioSummary, parse_optional_date
from plot_metrics import compute_metrics

logger = logging.getLogger(__name__)


def _as_plot(item):
    """Accept a Plot, a sqlite3.Row or a dict."""
    if isinstance(item, Plot):
        return item
    return Plot.from_row(item)


def iter_plot_metrics(plots, reference_instant, clamp_days_since_planting=False, on_skip=None):
    """
    Yield (plot, metrics) pairs.

    Items that cannot be converted are logged, reported to on_skip(item, error)
    when given, and left out.
    """
    for item in plots:
        try:
            plot = _as_plot(item)
            metrics = compute_metrics(plot, reference_instant, clamp_days_since_planting)
        except (TypeError, ValueError, KeyError, OverflowError) as e:
            logger.warning("Skipping plot in aggregation: %s", e)
            if on_skip:
                on_skip(item, e)
            continue
        yield plot, metrics


def aggregate_cycles(plots, reference_instant, clamp_days_since_planting=False) -> CycleTotals:
    """
    Sum completed cycles and total harvest over a plot collection.

    Args:
        plots: iterable of Plot (or rows/dicts convertible with Plot.from_row).
        reference_instant: date or datetime shared by every plot.

    Returns:
        CycleTotals; zeros for an empty collection.
    """
    total_cycles = 0
    total_kg = 0.0
    for _, metrics in iter_plot_metrics(plots, reference_instant, clamp_days_since_planting):
        total_cycles += metrics.completed_cycles
        total_kg += metrics.total_harvest_kg
    return CycleTotals(total_completed_cycles=total_cycles, total_harvest_kg=total_kg)


def summarize_portfolio(plots, reference_instant, clamp_days_since_planting=False) -> PortfolioSummary:
    """Dashboard summary: cycle totals plus status and alert counts."""
    summary = PortfolioSummary()
    status_counts = Counter()

    def skipped(item, error):
        summary.skipped_plots += 1

    for plot, metrics in iter_plot_metrics(plots, reference_instant, clamp_days_since_planting, skipped):
        summary.plot_count += 1
        summary.total_completed_cycles += metrics.completed_cycles
        summary.total_harvest_kg += metrics.total_harvest_kg
        status = PlotStatus.coerce(plot.status)
        status_counts[status.value if status else 'unknown'] += 1
        if parse_optional_date(plot.planting_date) is None:
            summary.undated_plots += 1
        if metrics.is_ready_for_harvest:
            summary.ready_for_harvest += 1
        if metrics.should_open_netting:
            summary.netting_to_open += 1
        if metrics.is_shade_opening_soon:
            summary.shade_opening_soon += 1

    summary.status_counts = dict(status_counts)
    return summary
