"""
Grouped summary statistics for long-format assay tables.

This module is the Aggregator stage of the pipeline: partition the long table by
the distinct tuple of key values and compute the mean and the sample standard
deviation (n - 1 denominator) of the value column for each partition.

A partition with a single observation has a defined mean and an undefined (NaN)
standard deviation. That is not an error; it is logged and propagated so the
renderer can leave out the error bar.
"""

from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger

from platetidy.exceptions import TransformError
from platetidy.io.transformers import (
    DEFAULT_NAMES_TO,
    DEFAULT_VALUES_TO,
    as_column_list,
    require_columns,
    to_long,
)
from platetidy.schema.validator import coerce_numeric_column

DEFAULT_MEAN_NAME = "mean_fluorescence_intensity"
DEFAULT_SD_NAME = "standard_dev"


def summarize(
    long: pd.DataFrame,
    by: Union[str, Sequence[str]],
    value_column: str = DEFAULT_VALUES_TO,
    mean_name: str = DEFAULT_MEAN_NAME,
    sd_name: str = DEFAULT_SD_NAME,
) -> pd.DataFrame:
    """
    Mean and sample standard deviation of ``value_column`` per group.

    Args:
        long: Long-format table
        by: Group key column name(s); rows with a missing key form their own group
        value_column: Numeric column to summarize
        mean_name: Output column name for the mean
        sd_name: Output column name for the standard deviation

    Returns:
        One row per distinct key tuple, sorted by key: the key columns followed by
        ``mean_name`` and ``sd_name``. ``sd_name`` is NaN for groups with fewer than 2
        non-missing values.

    Raises:
        TransformError: No keys or missing columns (TRANSFORM_006), repeated keys or
            clashing output names (TRANSFORM_004)
        DataTypeError: ``value_column`` is not numeric
    """
    keys = as_column_list(by)
    if not keys:
        raise TransformError("summarize needs at least one group key column", error_code="TRANSFORM_006")

    require_columns(long, keys, role="group key")
    require_columns(long, [value_column], role="value")

    repeated = sorted({key for key in keys if keys.count(key) > 1})
    if repeated:
        raise TransformError(
            f"Group key column(s) listed more than once: {repeated}",
            error_code="TRANSFORM_004",
            context={"key_columns": keys}
        )

    clashes = [name for name in (value_column, mean_name, sd_name) if name in keys]
    if clashes or mean_name == sd_name:
        raise TransformError(
            f"Column name clash between keys {keys} and outputs ({mean_name}, {sd_name}) or value '{value_column}'",
            error_code="TRANSFORM_004",
            context={"key_columns": keys, "mean_name": mean_name, "sd_name": sd_name}
        )

    frame = long[keys].copy()
    frame[value_column] = coerce_numeric_column(long[value_column], value_column)

    grouped = frame.groupby(keys, dropna=False, observed=True, sort=True)[value_column]
    summary = grouped.agg(**{mean_name: "mean", sd_name: "std"}).reset_index()

    # count() skips NaN values.
    counts = grouped.count()
    singletons = int((counts < 2).sum())
    if singletons:
        logger.warning(
            f"{singletons} group(s) have fewer than 2 observations; their standard deviation is NaN"
        )

    logger.debug(f"Summarized {len(long)} row(s) into {len(summary)} group(s) by {keys}")
    return summary


def add_error_bounds(
    summary: pd.DataFrame,
    mean_name: str = DEFAULT_MEAN_NAME,
    sd_name: str = DEFAULT_SD_NAME,
    lower: str = "ymin",
    upper: str = "ymax",
) -> pd.DataFrame:
    """Return a copy of ``summary`` with ``mean - sd`` and ``mean + sd`` columns (NaN where sd is NaN)."""
    require_columns(summary, [mean_name, sd_name], role="summary")

    result = summary.copy()
    mean = result[mean_name].astype("float64")
    sd = result[sd_name].astype("float64")
    result[lower] = mean - sd
    result[upper] = mean + sd
    return result


def summarize_wide(
    wide: pd.DataFrame,
    value_columns=None,
    key_columns=(),
    names_to: Optional[str] = DEFAULT_NAMES_TO,
    values_to: str = DEFAULT_VALUES_TO,
    mean_name: str = DEFAULT_MEAN_NAME,
    sd_name: str = DEFAULT_SD_NAME,
) -> pd.DataFrame:
    """
    Reshape a wide table and summarize it in one call.

    Groups by ``key_columns`` plus ``names_to`` (the originating column), which is
    the bar-graph case (by condition) and the time-course case (by treatment and
    timepoint) with only the column lists changing.
    """
    keys = as_column_list(key_columns)
    by = keys + ([names_to] if names_to is not None else [])
    if not by:
        raise TransformError(
            "summarize_wide needs key columns or names_to to group by",
            error_code="TRANSFORM_006"
        )

    long = to_long(wide, value_columns=value_columns, key_columns=keys, names_to=names_to, values_to=values_to)
    return summarize(long, by=by, value_column=values_to, mean_name=mean_name, sd_name=sd_name)


def column_statistics(wide: pd.DataFrame, columns=None) -> pd.DataFrame:
    """
    Mean and sample standard deviation of each wide column, computed directly.

    Returns a frame indexed by column name with ``mean`` and ``sd``; used to
    cross-check ``summarize_wide``.
    """
    selected = as_column_list(columns) if columns is not None else list(wide.columns)
    require_columns(wide, selected, role="value")

    rows = {}
    for column in selected:
        values = coerce_numeric_column(wide[column], column).to_numpy()
        values = values[~np.isnan(values)]
        mean = values.mean() if values.size else np.nan
        sd = values.std(ddof=1) if values.size > 1 else np.nan
        rows[column] = {"mean": mean, "sd": sd}
    return pd.DataFrame.from_dict(rows, orient="index")


__all__ = [
    'DEFAULT_MEAN_NAME',
    'DEFAULT_SD_NAME',
    'summarize',
    'add_error_bounds',
    'summarize_wide',
    'column_statistics',
]
