"""
models.py — Python dataclasses for the plot tracking application.

Maps to the SQLite tables created in database.py (plots, harvest_logs),
plus the derived PlotMetrics value which is never stored.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class PlotStatus(str, Enum):
    """Lifecycle state of a plot."""
    PLOT_PREPARATION = 'plot_preparation'
    PLANTED = 'planted'
    GROWING = 'growing'
    READY_FOR_HARVEST = 'ready_for_harvest'
    HARVESTING = 'harvesting'
    DORMANT = 'dormant'

    @classmethod
    def coerce(cls, value) -> Optional['PlotStatus']:
        """Return the matching status, or None for unknown/empty values."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


# ========================================
# Parsing helpers
# ========================================

def parse_date(value) -> Optional[date]:
    """Parse a stored date (ISO string, date or datetime). Empty → None.

    Raises ValueError for a non-empty string that is not an ISO date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    # Accept both "2025-03-01" and "2025-03-01T00:00:00(.000Z)"
    return date.fromisoformat(text[:10])


def parse_optional_date(value) -> Optional[date]:
    """Like parse_date, but an unparseable value reads as absent."""
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        return None


def parse_kg(value) -> float:
    """Parse a harvest quantity. Missing, empty or garbage values read as 0."""
    if value is None or value == '':
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


def parse_int(value, default: int = 0) -> int:
    """Parse an integer field, falling back to default."""
    if value is None or value == '':
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


# ========================================
# Stored records
# ========================================

@dataclass
class Plot:
    """A plot snapshot as read from the database."""
    id: Optional[int] = None
    name: str = ""
    location: str = ""
    crop_type: str = ""
    planting_date: Optional[date] = None
    days_to_maturity: int = 0
    days_to_open_netting: int = 0
    expected_harvest_date: Optional[date] = None
    actual_harvest_date: Optional[date] = None
    netting_open_date: Optional[date] = None
    status: Optional[PlotStatus] = PlotStatus.PLANTED
    current_cycle: int = 1
    harvest_amount_kg: Any = 0
    total_harvested_kg: Any = 0
    polybag_count: int = 0
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        # Callers may pass the stored status string
        self.status = PlotStatus.coerce(self.status)

    @classmethod
    def from_row(cls, row) -> 'Plot':
        """Build a Plot from a sqlite3.Row or a plain mapping.

        Dates that cannot be parsed read as absent.
        """
        data = dict(row)
        return cls(
            id=data.get('id'),
            name=data.get('name') or "",
            location=data.get('location') or "",
            crop_type=data.get('crop_type') or "",
            planting_date=parse_optional_date(data.get('planting_date')),
            days_to_maturity=parse_int(data.get('days_to_maturity')),
            days_to_open_netting=parse_int(data.get('days_to_open_netting')),
            expected_harvest_date=parse_optional_date(data.get('expected_harvest_date')),
            actual_harvest_date=parse_optional_date(data.get('actual_harvest_date')),
            netting_open_date=parse_optional_date(data.get('netting_open_date')),
            status=PlotStatus.coerce(data.get('status')),
            current_cycle=parse_int(data.get('current_cycle'), default=1),
            harvest_amount_kg=data.get('harvest_amount_kg'),
            total_harvested_kg=data.get('total_harvested_kg'),
            polybag_count=parse_int(data.get('polybag_count')),
            notes=data.get('notes'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (dates as ISO strings)."""
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'crop_type': self.crop_type,
            'planting_date': _iso(self.planting_date),
            'days_to_maturity': self.days_to_maturity,
            'days_to_open_netting': self.days_to_open_netting,
            'expected_harvest_date': _iso(self.expected_harvest_date),
            'actual_harvest_date': _iso(self.actual_harvest_date),
            'netting_open_date': _iso(self.netting_open_date),
            'status': self.status.value if self.status else None,
            'current_cycle': self.current_cycle,
            'harvest_amount_kg': parse_kg(self.harvest_amount_kg),
            'total_harvested_kg': parse_kg(self.total_harvested_kg),
            'polybag_count': self.polybag_count,
            'notes': self.notes,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


@dataclass
class HarvestLog:
    """One graded harvest event for a plot cycle."""
    id: Optional[int] = None
    plot_id: int = 0
    cycle_number: int = 1
    harvest_date: Optional[date] = None
    grade_a_kg: float = 0.0
    grade_b_kg: float = 0.0
    price_per_kg_grade_a: float = 0.0
    price_per_kg_grade_b: float = 0.0
    comments: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> 'HarvestLog':
        data = dict(row)
        return cls(
            id=data.get('id'),
            plot_id=parse_int(data.get('plot_id')),
            cycle_number=parse_int(data.get('cycle_number'), default=1),
            harvest_date=parse_optional_date(data.get('harvest_date')),
            grade_a_kg=parse_kg(data.get('grade_a_kg')),
            grade_b_kg=parse_kg(data.get('grade_b_kg')),
            price_per_kg_grade_a=parse_kg(data.get('price_per_kg_grade_a')),
            price_per_kg_grade_b=parse_kg(data.get('price_per_kg_grade_b')),
            comments=data.get('comments'),
            created_at=data.get('created_at'),
        )

    @property
    def total_kg(self) -> float:
        return self.grade_a_kg + self.grade_b_kg

    @property
    def grade_a_value(self) -> float:
        return self.grade_a_kg * self.price_per_kg_grade_a

    @property
    def grade_b_value(self) -> float:
        return self.grade_b_kg * self.price_per_kg_grade_b

    @property
    def total_value(self) -> float:
        return self.grade_a_value + self.grade_b_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'plot_id': self.plot_id,
            'cycle_number': self.cycle_number,
            'harvest_date': _iso(self.harvest_date),
            'grade_a_kg': self.grade_a_kg,
            'grade_b_kg': self.grade_b_kg,
            'price_per_kg_grade_a': self.price_per_kg_grade_a,
            'price_per_kg_grade_b': self.price_per_kg_grade_b,
            'total_kg': self.total_kg,
            'total_value': self.total_value,
            'comments': self.comments,
            'created_at': self.created_at,
        }


# ========================================
# Derived values (never persisted)
# ========================================

@dataclass(frozen=True)
class PlotMetrics:
    """Time-based metrics, projected dates and alerts for one plot."""
    days_since_planting: int
    dap_days: int
    wap_weeks: int
    harvest_progress_percent: float
    calculated_harvest_date: Optional[date]
    calculated_netting_date: Optional[date]
    days_to_harvest: int
    days_to_open_shade: int
    is_shade_opening_soon: bool
    should_open_netting: bool
    is_ready_for_harvest: bool
    current_cycle_harvest_kg: float
    total_harvest_kg: float
    completed_cycles: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'days_since_planting': self.days_since_planting,
            'dap_days': self.dap_days,
            'wap_weeks': self.wap_weeks,
            'harvest_progress_percent': self.harvest_progress_percent,
            'calculated_harvest_date': _iso(self.calculated_harvest_date),
            'calculated_netting_date': _iso(self.calculated_netting_date),
            'days_to_harvest': self.days_to_harvest,
            'days_to_open_shade': self.days_to_open_shade,
            'is_shade_opening_soon': self.is_shade_opening_soon,
            'should_open_netting': self.should_open_netting,
            'is_ready_for_harvest': self.is_ready_for_harvest,
            'current_cycle_harvest_kg': self.current_cycle_harvest_kg,
            'total_harvest_kg': self.total_harvest_kg,
            'completed_cycles': self.completed_cycles,
        }


@dataclass(frozen=True)
class CycleTotals:
    """Portfolio totals folded from per-plot metrics."""
    total_completed_cycles: int = 0
    total_harvest_kg: float = 0.0


@dataclass
class PortfolioSummary:
    """Dashboard summary across all plots."""
    plot_count: int = 0
    total_completed_cycles: int = 0
    total_harvest_kg: float = 0.0
    status_counts: Dict[str, int] = field(default_factory=dict)
    ready_for_harvest: int = 0
    netting_to_open: int = 0
    shade_opening_soon: int = 0
    undated_plots: int = 0
    skipped_plots: int = 0


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None
