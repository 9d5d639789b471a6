"""Inventory Excel Service — reads uploaded workbooks and writes exports.

Import: first worksheet only, header row + one car per row, validated with
the create schema. Export: active cars (or an empty template) as .xlsx.
"""

import io
import logging

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment

from core.exceptions import ValidationError
from ..config import get_config
from ..constants import SHEET_COLUMNS, FIELD_LABELS, CAR_COLORS
from ..parsers.utils import normalize_columns, clean_cell, cell_to_text
from ..schemas import CreateCarRequest, validate_car

logger = logging.getLogger('dealership.inventory.services.excel')

_TEXT_FIELDS = {'sku', 'model', 'make'}

# Excel row of the first data row: rows are 1-based and row 1 is the header
_FIRST_DATA_ROW = 2


# ════════════════════════════════════════════════════════════════
# Import
# ════════════════════════════════════════════════════════════════

def parse_excel_file(buffer, max_rows=None):
    """Decode an uploaded workbook into row dicts.

    Args:
        buffer: Raw .xlsx/.xls bytes
        max_rows: Row ceiling, defaults to the configured MAX_UPLOAD_ROWS

    Returns:
        (rows, sheet_name): rows keyed by car field name, empty cells omitted

    Raises:
        ValidationError: unreadable file, no worksheet, or too many rows
    """
    if max_rows is None:
        max_rows = get_config().MAX_UPLOAD_ROWS

    try:
        workbook = pd.ExcelFile(io.BytesIO(buffer))
    except Exception as e:
        logger.warning(f'Unreadable Excel upload: {e}')
        raise ValidationError('Could not read the Excel file') from e

    with workbook:
        if not workbook.sheet_names:
            raise ValidationError('Excel file contains no worksheets')
        sheet_name = workbook.sheet_names[0]
        df = workbook.parse(sheet_name)

    df = normalize_columns(df).dropna(how='all')

    if len(df) > max_rows:
        raise ValidationError(
            f'Excel file contains {len(df)} rows, which exceeds the maximum of {max_rows} rows'
        )

    rows = []
    for record in df.to_dict('records'):
        row = {}
        for key, value in record.items():
            value = clean_cell(value)
            if value is None:
                continue
            if key in _TEXT_FIELDS:
                value = cell_to_text(value)
            row[str(key)] = value
        rows.append(row)

    logger.info(f'Parsed {len(rows)} rows from sheet "{sheet_name}"')
    return rows, sheet_name


def validate_and_parse_car_data(rows):
    """Split rows into valid cars and per-row errors, preserving row order.

    Returns:
        (valid_cars, errors): errors are {'row', 'sku'?, 'errors'} where row
        is the Excel row number (data row 1 is Excel row 2)
    """
    valid_cars, errors = [], []

    for index, row in enumerate(rows):
        car, messages = validate_car(row, CreateCarRequest)
        if car is not None:
            valid_cars.append(car)
            continue

        error = {'row': index + _FIRST_DATA_ROW}
        if isinstance(row, dict) and row.get('sku') is not None:
            error['sku'] = str(row['sku'])
        error['errors'] = messages
        errors.append(error)

    return valid_cars, errors


# ════════════════════════════════════════════════════════════════
# Export
# ════════════════════════════════════════════════════════════════

_HEADER_FILL = PatternFill(start_color='1F4E79', end_color='1F4E79', fill_type='solid')
_HEADER_FONT = Font(bold=True, color='FFFFFF')

_EXPORT_EXTRA = (('createdAt', 'Created At'), ('updatedAt', 'Updated At'))


def _write_header(ws, headers):
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal='center')
    ws.freeze_panes = 'A2'


def _autosize(ws):
    for col in ws.columns:
        longest = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(longest + 2, 50)


def _to_buffer(wb):
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def build_export_workbook(cars):
    """Active cars as an .xlsx the import endpoints accept back.

    Returns:
        BytesIO positioned at the start
    """
    wb = Workbook()
    ws = wb.active
    ws.title = 'Cars'

    headers = [FIELD_LABELS[f] for f in SHEET_COLUMNS] + [label for _, label in _EXPORT_EXTRA]
    _write_header(ws, headers)

    for row_idx, car in enumerate(cars, _FIRST_DATA_ROW):
        for col, field in enumerate(SHEET_COLUMNS, 1):
            ws.cell(row=row_idx, column=col, value=car.get(field))
        for offset, (field, _) in enumerate(_EXPORT_EXTRA, len(SHEET_COLUMNS) + 1):
            ws.cell(row=row_idx, column=offset, value=car.get(field))

    _autosize(ws)
    logger.info(f'Exported {len(cars)} cars')
    return _to_buffer(wb)


def build_import_template():
    """Empty import sheet with the expected headers and one example row."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Cars'
    _write_header(ws, [FIELD_LABELS[f] for f in SHEET_COLUMNS])
    example = ('EXAMPLE-001', 'Camry', 'Toyota', 30000, 2024, CAR_COLORS[1])
    for col, value in enumerate(example, 1):
        ws.cell(row=_FIRST_DATA_ROW, column=col, value=value)

    notes = wb.create_sheet('Notes')
    notes.append(['Column', 'Rule'])
    notes.append(['SKU', 'Required, unique among active cars'])
    notes.append(['Model / Make', 'Required text'])
    notes.append(['Price', 'Positive number'])
    notes.append(['Year', 'Whole number from 1900 to next year'])
    notes.append(['Color', ', '.join(CAR_COLORS)])
    _autosize(notes)

    _autosize(ws)
    return _to_buffer(wb)
