"""
utils/validators.py — Input validation helpers.

Validates incoming JSON payloads before they reach database.py:
- Plot fields (required name/planting date, positive durations, known status)
- Harvest recording (positive amount, valid date)
- Next-cycle setup (new planting date and durations)
- Harvest logs (cycle number, non-negative kg and prices)

Each validator returns (cleaned, errors): cleaned holds parsed Python values
for the fields that were supplied, errors is a list of messages.
"""

import math

from models import PlotStatus, parse_date

TEXT_FIELDS = ('name', 'location', 'crop_type', 'notes')
DURATION_FIELDS = ('days_to_maturity', 'days_to_open_netting')
POSITIVE_INT_FIELDS = DURATION_FIELDS + ('current_cycle',)
# Ten years
MAX_DURATION_DAYS = 3650
NON_NEGATIVE_INT_FIELDS = ('polybag_count',)
DATE_FIELDS = ('planting_date', 'expected_harvest_date', 'actual_harvest_date', 'netting_open_date')
KG_FIELDS = ('harvest_amount_kg', 'total_harvested_kg')


def _int_field(data, key, errors, minimum, maximum=None):
    value = data.get(key)
    if isinstance(value, bool):
        errors.append(f"{key} must be a whole number.")
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        errors.append(f"{key} must be a whole number.")
        return None
    if isinstance(value, float) and value != number:
        errors.append(f"{key} must be a whole number.")
        return None
    if number < minimum:
        errors.append(f"{key} must be at least {minimum}.")
        return None
    if maximum is not None and number > maximum:
        errors.append(f"{key} must be at most {maximum}.")
        return None
    return number


def _number_field(data, key, errors, minimum=0.0):
    value = data.get(key)
    if value is None or value == '':
        return 0.0
    if isinstance(value, bool):
        errors.append(f"{key} must be a number.")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        errors.append(f"{key} must be a number.")
        return None
    if not math.isfinite(number):
        errors.append(f"{key} must be a number.")
        return None
    if number < minimum:
        errors.append(f"{key} must be {minimum} or more.")
        return None
    return number


def _date_field(data, key, errors):
    try:
        return parse_date(data.get(key))
    except (TypeError, ValueError):
        errors.append(f"{key} must be a date (YYYY-MM-DD).")
        return None


def validate_plot(data, partial=False):
    """
    Validate a plot payload.

    Args:
        data: dict from request JSON.
        partial: True for updates, where only supplied fields are checked.

    Returns:
        (cleaned dict, list of error messages)
    """
    data = data if isinstance(data, dict) else {}
    cleaned = {}
    errors = []

    if not partial:
        for key in ('name', 'planting_date', 'days_to_maturity', 'days_to_open_netting'):
            if data.get(key) in (None, ''):
                errors.append(f"{key} is required.")
        if errors:
            return cleaned, errors

    for key in TEXT_FIELDS:
        if key in data:
            cleaned[key] = str(data[key] or '').strip() if key != 'notes' else data[key]
    if 'name' in cleaned and not cleaned['name']:
        errors.append("name is required.")

    for key in POSITIVE_INT_FIELDS:
        if key in data:
            maximum = MAX_DURATION_DAYS if key in DURATION_FIELDS else None
            value = _int_field(data, key, errors, minimum=1, maximum=maximum)
            if value is not None:
                cleaned[key] = value

    for key in NON_NEGATIVE_INT_FIELDS:
        if key in data:
            value = _int_field(data, key, errors, minimum=0)
            if value is not None:
                cleaned[key] = value

    for key in DATE_FIELDS:
        if key in data:
            cleaned[key] = _date_field(data, key, errors)
    if 'planting_date' in data and cleaned.get('planting_date') is None:
        if "planting_date must be a date (YYYY-MM-DD)." not in errors:
            errors.append("planting_date is required.")

    for key in KG_FIELDS:
        if key in data:
            value = _number_field(data, key, errors)
            if value is not None:
                cleaned[key] = value

    if 'status' in data:
        status = PlotStatus.coerce(data['status'])
        if status is None:
            errors.append(f"Unknown status: {data['status']!r}.")
        else:
            cleaned['status'] = status

    return cleaned, errors


def validate_harvest(data):
    """Validate a harvest recording: amount_kg > 0, optional harvest_date."""
    data = data if isinstance(data, dict) else {}
    errors = []
    cleaned = {}

    amount = _number_field(data, 'amount_kg', errors)
    if amount is not None:
        if amount <= 0:
            errors.append("amount_kg must be greater than 0.")
        else:
            cleaned['amount_kg'] = amount

    if data.get('harvest_date'):
        cleaned['harvest_date'] = _date_field(data, 'harvest_date', errors)

    return cleaned, errors


def validate_next_cycle(data):
    """Validate the setup of a plot's next cycle."""
    data = data if isinstance(data, dict) else {}
    errors = []
    cleaned = {}

    if data.get('planting_date') in (None, ''):
        errors.append("planting_date is required.")
    else:
        cleaned['planting_date'] = _date_field(data, 'planting_date', errors)

    for key in DURATION_FIELDS:
        value = _int_field(data, key, errors, minimum=1, maximum=MAX_DURATION_DAYS)
        if value is not None:
            cleaned[key] = value

    if data.get('polybag_count') not in (None, ''):
        value = _int_field(data, 'polybag_count', errors, minimum=1)
        if value is not None:
            cleaned['polybag_count'] = value

    if 'notes' in data:
        cleaned['notes'] = data['notes']

    return cleaned, errors


def validate_harvest_log(data, partial=False):
    """Validate a harvest log payload."""
    data = data if isinstance(data, dict) else {}
    errors = []
    cleaned = {}

    if not partial:
        for key in ('plot_id', 'cycle_number', 'harvest_date'):
            if data.get(key) in (None, ''):
                errors.append(f"{key} is required.")
        if errors:
            return cleaned, errors

    if 'plot_id' in data:
        value = _int_field(data, 'plot_id', errors, minimum=1)
        if value is not None:
            cleaned['plot_id'] = value

    if 'cycle_number' in data:
        value = _int_field(data, 'cycle_number', errors, minimum=1)
        if value is not None:
            cleaned['cycle_number'] = value

    if 'harvest_date' in data:
        value = _date_field(data, 'harvest_date', errors)
        if value is None and "harvest_date must be a date (YYYY-MM-DD)." not in errors:
            errors.append("harvest_date is required.")
        cleaned['harvest_date'] = value

    for key in ('grade_a_kg', 'grade_b_kg', 'price_per_kg_grade_a', 'price_per_kg_grade_b'):
        if key in data:
            value = _number_field(data, key, errors)
            if value is not None:
                cleaned[key] = value

    if 'comments' in data:
        cleaned['comments'] = data['comments']

    return cleaned, errors
