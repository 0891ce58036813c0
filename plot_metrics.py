"""
plot_metrics.py — Plot lifecycle and harvest metrics calculation.

This module is the single source of truth for every time-based figure shown
for a plot (plot cards, dashboard totals, harvest reports):
- DAP / WAP: days and weeks after planting, signed (negative = planting ahead)
- Projected harvest and netting dates, derived from the planting date
- Countdowns to harvest and to shade opening, never below zero
- Harvest progress, clamped to [0, 100]
- Alert flags: shade opening soon, netting to open, ready for harvest
- Completed cycle count

Rules:
- Projected dates always come from planting_date + durations, never from the
  stored expected_harvest_date.
- should_open_netting checks the stored netting_open_date, so a manual
  override of the netting date is honored by the alert while the countdown
  still follows the derived schedule.
- Only the calendar date of the reference instant is used.
- Projected dates saturate at date.min / date.max for oversized durations.
- Calculation is pure: the Plot passed in is never modified.
"""

from datetime import date, datetime, timedelta
from typing import Union

from models import (
    Plot, PlotMetrics, PlotStatus, parse_date, parse_int, parse_kg, parse_optional_date
)


# A shade-opening countdown at or below this many days raises the alert
SHADE_ALERT_WINDOW_DAYS = 7

DAYS_PER_WEEK = 7

STATUS_LABELS = {
    PlotStatus.PLOT_PREPARATION: 'Plot Preparation',
    PlotStatus.PLANTED: 'Planted',
    PlotStatus.GROWING: 'Growing',
    PlotStatus.READY_FOR_HARVEST: 'Ready for Harvest',
    PlotStatus.HARVESTING: 'Harvesting',
    PlotStatus.DORMANT: 'Dormant',
}

STATUS_COLORS = {
    PlotStatus.PLOT_PREPARATION: 'bg-orange-500',
    PlotStatus.PLANTED: 'bg-green-500',
    PlotStatus.GROWING: 'bg-blue-500',
    PlotStatus.READY_FOR_HARVEST: 'bg-yellow-500',
    PlotStatus.HARVESTING: 'bg-purple-500',
    PlotStatus.DORMANT: 'bg-gray-500',
}
DEFAULT_STATUS_COLOR = 'bg-gray-400'

DateLike = Union[date, datetime]


def to_calendar_date(instant: DateLike) -> date:
    """Reduce a date or datetime to its calendar date."""
    if isinstance(instant, datetime):
        return instant.date()
    return instant


def day_difference(later: DateLike, earlier: DateLike) -> int:
    """Signed number of calendar days from earlier to later."""
    return (to_calendar_date(later) - to_calendar_date(earlier)).days


def add_days(start: date, days: int) -> date:
    """start + days, saturating at date.min / date.max."""
    try:
        return start + timedelta(days=days)
    except OverflowError:
        return date.max if days > 0 else date.min


def compute_completed_cycles(status, current_cycle) -> int:
    """Number of cycles the plot has reached.

    A plot that is harvesting counts its current cycle; otherwise only the
    cycles before the current one count.
    """
    cycle = parse_int(current_cycle, default=1)
    if PlotStatus.coerce(status) is PlotStatus.HARVESTING:
        return max(cycle, 0)
    if cycle > 1:
        return cycle - 1
    return 0


def compute_harvest_progress(days_since_planting: int, days_to_maturity: int) -> float:
    """Percentage of the maturity period elapsed, clamped to [0, 100]."""
    if days_since_planting < 0:
        return 0.0
    if days_to_maturity <= 0:
        # Harvest is due on the planting day itself
        return 100.0
    return min(100.0, 100.0 * days_since_planting / days_to_maturity)


def compute_metrics(
    plot: Plot,
    reference_instant: DateLike,
    clamp_days_since_planting: bool = False,
) -> PlotMetrics:
    """
    Compute the metrics of one plot at a reference instant.

    Args:
        plot: Plot snapshot (not modified).
        reference_instant: date or datetime to measure against, normally today.
        clamp_days_since_planting: if True, a future planting reads as day 0
            instead of a negative day count.

    Returns:
        PlotMetrics for the plot. A plot without a usable planting date is
        reported as not planted yet: day 0, no projected dates, zero
        countdowns and no schedule alerts. Its harvest figures, cycle count
        and stored netting date still apply.
    """
    today = to_calendar_date(reference_instant)
    planting_date = parse_optional_date(plot.planting_date)
    netting_open_date = parse_optional_date(plot.netting_open_date)
    harvested = parse_optional_date(plot.actual_harvest_date) is not None

    should_open_netting = (
        netting_open_date is not None
        and today >= netting_open_date
        and not harvested
    )
    current_cycle_harvest_kg = parse_kg(plot.harvest_amount_kg)
    total_harvest_kg = parse_kg(plot.total_harvested_kg)
    completed_cycles = compute_completed_cycles(plot.status, plot.current_cycle)

    if planting_date is None:
        return PlotMetrics(
            days_since_planting=0,
            dap_days=0,
            wap_weeks=0,
            harvest_progress_percent=0.0,
            calculated_harvest_date=None,
            calculated_netting_date=None,
            days_to_harvest=0,
            days_to_open_shade=0,
            is_shade_opening_soon=False,
            should_open_netting=should_open_netting,
            is_ready_for_harvest=False,
            current_cycle_harvest_kg=current_cycle_harvest_kg,
            total_harvest_kg=total_harvest_kg,
            completed_cycles=completed_cycles,
        )

    days_to_maturity = parse_int(plot.days_to_maturity)
    days_to_open_netting = parse_int(plot.days_to_open_netting)

    days_since_planting = day_difference(today, planting_date)
    if clamp_days_since_planting:
        days_since_planting = max(0, days_since_planting)

    # Python's // floors toward negative infinity: -1 day is week -1
    wap_weeks = days_since_planting // DAYS_PER_WEEK

    calculated_harvest_date, calculated_netting_date = derived_dates(
        planting_date, days_to_maturity, days_to_open_netting
    )

    days_to_harvest = max(0, day_difference(calculated_harvest_date, today))
    days_to_open_shade = max(0, day_difference(calculated_netting_date, today))

    harvest_progress = compute_harvest_progress(days_since_planting, days_to_maturity)

    return PlotMetrics(
        days_since_planting=days_since_planting,
        dap_days=days_since_planting,
        wap_weeks=wap_weeks,
        harvest_progress_percent=harvest_progress,
        calculated_harvest_date=calculated_harvest_date,
        calculated_netting_date=calculated_netting_date,
        days_to_harvest=days_to_harvest,
        days_to_open_shade=days_to_open_shade,
        is_shade_opening_soon=0 < days_to_open_shade <= SHADE_ALERT_WINDOW_DAYS,
        should_open_netting=should_open_netting,
        is_ready_for_harvest=days_to_harvest == 0 and not harvested,
        current_cycle_harvest_kg=current_cycle_harvest_kg,
        total_harvest_kg=total_harvest_kg,
        completed_cycles=completed_cycles,
    )


def derived_dates(planting_date: date, days_to_maturity: int, days_to_open_netting: int):
    """(expected harvest date, netting open date) for a planting."""
    return (
        add_days(planting_date, days_to_maturity),
        add_days(planting_date, days_to_open_netting),
    )


# ========================================
# Display helpers
# ========================================

def status_label(status) -> str:
    """Human label for a status; unknown values are shown as-is."""
    coerced = PlotStatus.coerce(status)
    if coerced is None:
        return '' if status is None else str(status)
    return STATUS_LABELS[coerced]


def status_color(status) -> str:
    """Badge colour class for a status."""
    coerced = PlotStatus.coerce(status)
    return STATUS_COLORS.get(coerced, DEFAULT_STATUS_COLOR)


def format_plot_date(value) -> str:
    """Format a date as e.g. 'Mar 01, 2025'."""
    parsed = parse_date(value)
    if parsed is None:
        return ''
    return parsed.strftime('%b %d, %Y')


def format_harvest_amount(value) -> str:
    """Format a kg amount with one decimal."""
    return f"{parse_kg(value):.1f}"
