"""
I/O module for platetidy: spreadsheet loading and wide-to-long reshaping.

- loaders.py: read a cell range from a workbook and validate it against a SheetLayout
- transformers.py: reshape wide tables to long format and split/combine key columns

Loading and reshaping are separate stages so a caller can inspect or fix the wide
table before it is reshaped.
"""

from platetidy.io.loaders import load_wide_table, read_region
from platetidy.io.transformers import (
    DEFAULT_NAMES_TO,
    DEFAULT_VALUES_TO,
    interaction_column,
    split_key_column,
    to_long,
)

__all__ = [
    'load_wide_table',
    'read_region',
    'DEFAULT_NAMES_TO',
    'DEFAULT_VALUES_TO',
    'interaction_column',
    'split_key_column',
    'to_long',
]
