"""
utils/export.py — Excel export of harvest reports using openpyxl.

Generates an .xlsx file for one plot cycle with a styled header row.
Columns: Date, Grade A (kg), Grade B (kg), Price A, Price B, Value A, Value B,
Total, Comments — followed by a totals row.
"""

from datetime import date
from io import BytesIO

from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from database import get_plot, get_harvest_logs
from harvest_report import build_harvest_report


HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
HEADER_BORDER = Border(
    bottom=Side(style='thin', color='1B5E20'),
    right=Side(style='thin', color='E2E8F0'),
)
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)
TOTAL_FONT = Font(bold=True)
TOTAL_FILL = PatternFill(start_color='E8F5E9', end_color='E8F5E9', fill_type='solid')

COLUMNS = [
    'Date', 'Grade A (kg)', 'Grade B (kg)', 'Price A / kg', 'Price B / kg',
    'Value A', 'Value B', 'Total', 'Comments',
]
MONEY_FORMAT = '#,##0.00'
KG_FORMAT = '0.0'


def _build_sheet(ws, report):
    """Populate a worksheet with a title block, log rows and a totals row."""
    plot = report['plot']
    ws.cell(row=1, column=1, value=f"Harvest Report - {plot['name']} (Cycle {report['cycle']})").font = Font(bold=True, size=13)
    ws.cell(row=2, column=1, value=f"Crop: {plot['crop_type']}   Location: {plot['location']}   Polybags: {plot['polybag_count']}")

    header_row = 4
    for col_idx, col_name in enumerate(COLUMNS, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col_name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER

    row_idx = header_row + 1
    for log in report['logs']:
        grade_a_value = log['grade_a_kg'] * log['price_per_kg_grade_a']
        grade_b_value = log['grade_b_kg'] * log['price_per_kg_grade_b']
        values = [
            date.fromisoformat(log['harvest_date']) if log['harvest_date'] else '',
            log['grade_a_kg'],
            log['grade_b_kg'],
            log['price_per_kg_grade_a'],
            log['price_per_kg_grade_b'],
            grade_a_value,
            grade_b_value,
            log['total_value'],
            log['comments'] or '',
        ]
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = CELL_BORDER
            if col_idx in (2, 3):
                cell.number_format = KG_FORMAT
            elif 4 <= col_idx <= 8:
                cell.number_format = MONEY_FORMAT
        ws.cell(row=row_idx, column=1).number_format = 'yyyy-mm-dd'
        row_idx += 1

    totals = report['totals']
    total_values = [
        'Total', totals['grade_a_kg'], totals['grade_b_kg'], None, None,
        totals['grade_a_value'], totals['grade_b_value'], totals['total_value'], None,
    ]
    for col_idx, value in enumerate(total_values, 1):
        cell = ws.cell(row=row_idx, column=col_idx, value=value)
        cell.font = TOTAL_FONT
        cell.fill = TOTAL_FILL
        cell.border = CELL_BORDER
        if col_idx in (2, 3):
            cell.number_format = KG_FORMAT
        elif col_idx >= 6:
            cell.number_format = MONEY_FORMAT

    # Column widths
    for letter, width in zip('ABCDEFGHI', (12, 13, 13, 12, 12, 12, 12, 12, 30)):
        ws.column_dimensions[letter].width = width

    # Freeze header row
    ws.freeze_panes = f'A{header_row + 1}'


def generate_harvest_excel(plot_id, cycle, reference_instant=None, clamp_days_since_planting=False):
    """Generate an Excel workbook for one plot cycle.

    Returns:
        (BytesIO buffer, filename) on success, (None, None) on failure.
    """
    import openpyxl

    plot = get_plot(plot_id)
    if not plot:
        return None, None

    logs = get_harvest_logs(plot_id)
    report = build_harvest_report(
        plot, logs, cycle, reference_instant or date.today(), clamp_days_since_planting
    )
    if not report['logs']:
        return None, None

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = f"Cycle {report['cycle']}"

    _build_sheet(ws, report)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    safe_name = plot.name.replace(' ', '_').replace('/', '_')
    filename = f"harvest_{safe_name}_cycle{report['cycle']}.xlsx"
    return buffer, filename
