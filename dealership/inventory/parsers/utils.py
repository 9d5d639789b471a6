"""Spreadsheet cell helpers — header mapping and cell clean-up."""

import math
import logging

logger = logging.getLogger('dealership.inventory.parsers.utils')

# Header (lower-cased, trimmed) -> car field
CAR_COLUMN_MAP = {
    'sku': 'sku',
    'model': 'model',
    'make': 'make',
    'price': 'price',
    'year': 'year',
    'color': 'color',
    'colour': 'color',
}

_EMPTY_MARKERS = ('', 'nan', 'NaN', 'None', 'none', 'null')


def normalize_columns(df, column_map=None):
    """Rename DataFrame columns to car field names.

    Headers are matched case-insensitively after trimming, so 'SKU', ' Sku '
    and 'sku' all become 'sku'. Unknown columns are left untouched.
    """
    column_map = column_map or CAR_COLUMN_MAP
    rename = {}
    for col in df.columns:
        key = str(col).strip().lower()
        if key in column_map and column_map[key] != col:
            rename[col] = column_map[key]
    if rename:
        df = df.rename(columns=rename)
    return df


def clean_cell(val):
    """Turn a pandas cell into a plain Python value, or None when empty.

    NaN/NaT and blank strings count as empty; numpy scalars are unboxed.
    """
    if val is None:
        return None
    if hasattr(val, 'item') and not isinstance(val, (str, bytes)):
        try:
            val = val.item()
        except (ValueError, AttributeError):
            pass
    if isinstance(val, float) and math.isnan(val):
        return None
    if isinstance(val, str):
        val = val.strip()
        if val in _EMPTY_MARKERS:
            return None
        return val
    if val != val:  # NaT and other NaN-like scalars
        return None
    return val


def cell_to_text(val):
    """Read a text column cell: numbers typed into SKU/Model/Make stay text.

    1001.0 (how pandas reads an integer in a column with blanks) becomes '1001'.
    """
    if val is None or isinstance(val, str) or isinstance(val, bool):
        return val
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if isinstance(val, (int, float)):
        return str(val)
    return val
