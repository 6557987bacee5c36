"""Grouped summary statistics."""

from platetidy.analysis.summary import (
    DEFAULT_MEAN_NAME,
    DEFAULT_SD_NAME,
    add_error_bounds,
    column_statistics,
    summarize,
    summarize_wide,
)

__all__ = [
    'DEFAULT_MEAN_NAME',
    'DEFAULT_SD_NAME',
    'add_error_bounds',
    'column_statistics',
    'summarize',
    'summarize_wide',
]
