"""Explicit sheet layouts and load-time validation."""

from platetidy.schema.models import (
    CellRange,
    ColumnDType,
    ColumnRole,
    ColumnSpec,
    SheetLayout,
    parse_cell_range,
)
from platetidy.schema.validator import coerce_numeric_column, validate_wide_table

__all__ = [
    'CellRange',
    'ColumnDType',
    'ColumnRole',
    'ColumnSpec',
    'SheetLayout',
    'parse_cell_range',
    'coerce_numeric_column',
    'validate_wide_table',
]
