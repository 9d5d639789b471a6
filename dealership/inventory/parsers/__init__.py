from .utils import normalize_columns, clean_cell, cell_to_text

__all__ = ['normalize_columns', 'clean_cell', 'cell_to_text']
