"""Inventory constants shared by validation, persistence, export and the UI."""

from datetime import date

CAR_COLORS = ('red', 'blue', 'green', 'yellow', 'silver', 'black', 'white')

MIN_YEAR = 1900


def max_year():
    """Latest accepted model year (next year's models are allowed)."""
    return date.today().year + 1


# Editable fields in display order, with their labels
EDITABLE_FIELDS = (
    ('model', 'Model'),
    ('make', 'Make'),
    ('price', 'Price'),
    ('year', 'Year'),
    ('color', 'Color'),
)

FIELD_LABELS = {'sku': 'SKU', **dict(EDITABLE_FIELDS)}

# Spreadsheet column order for import templates and exports
SHEET_COLUMNS = ('sku', 'model', 'make', 'price', 'year', 'color')

# API sort field -> cars column
SORT_COLUMNS = {
    'sku': 'sku',
    'model': 'model',
    'make': 'make',
    'price': 'price',
    'year': 'year',
    'color': 'color',
    'createdAt': 'created_at',
}

SORT_DIRECTIONS = ('asc', 'desc')

EXCEL_MIME_TYPES = (
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-excel',
)
