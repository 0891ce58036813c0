"""
scripts/fix_harvest_accumulation.py — Find (and optionally repair) plots whose
cumulative harvest total was never accumulated across cycles.

A plot in cycle 2+ whose total equals its current-cycle harvest has lost the
earlier cycles' amounts. The suggested total assumes a similar harvest per
cycle (current harvest x cycle number); review before applying.

Usage:
    python scripts/fix_harvest_accumulation.py            # report only
    python scripts/fix_harvest_accumulation.py --apply    # write suggested totals

The database path comes from PLOT_DB_PATH (default data/plots.db).
"""

import argparse
import os
import sys

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import get_plot_rows, init_db, update_plot  # noqa: E402
from harvest_report import (  # noqa: E402
    ACCUMULATION_BROKEN, ACCUMULATION_OK, ACCUMULATION_OK_SINGLE, check_accumulation
)
from models import Plot, parse_kg  # noqa: E402
from utils.backup import backup_db  # noqa: E402


def fix_harvest_accumulation(apply=False):
    """Check every plot; returns the list of (plot_id, suggested_total) found broken."""
    init_db()
    rows = get_plot_rows()
    print(f"Found {len(rows)} plots to analyze")

    broken = []
    for row in rows:
        plot = Plot.from_row(row)

        print(f"\n{plot.name}:")
        print(f"  Current cycle: {plot.current_cycle}")
        print(f"  Current harvest: {parse_kg(plot.harvest_amount_kg)} kg")
        print(f"  Current total: {parse_kg(plot.total_harvested_kg)} kg")

        state, suggested = check_accumulation(plot)
        if state == ACCUMULATION_BROKEN:
            print(f"  Accumulation issue: estimated total {suggested} kg")
            broken.append((plot.id, suggested))
        elif state == ACCUMULATION_OK_SINGLE:
            print("  OK (single cycle)")
        elif state == ACCUMULATION_OK:
            print("  OK (accumulating)")
        else:
            print("  Unusual state, manual review needed")

    if apply and broken:
        backup_db('pre_accumulation_fix')
        for plot_id, suggested in broken:
            ok, error = update_plot(plot_id, {'total_harvested_kg': suggested})
            print(f"  Plot {plot_id}: {'updated' if ok else error}")

    print(f"\n{len(broken)} plot(s) with broken accumulation"
          + (" fixed." if apply and broken else "."))
    return broken


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.split('\n\n')[0])
    parser.add_argument('--apply', action='store_true', help='write the suggested totals')
    args = parser.parse_args(argv)
    fix_harvest_accumulation(apply=args.apply)
    return 0


if __name__ == '__main__':
    sys.exit(main())
