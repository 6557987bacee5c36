"""
validator.py - Check and coerce a freshly loaded table against its SheetLayout.

The loader only knows about cells; this module turns cells into typed columns:
ignored columns are dropped, value columns become numeric, key columns get their
declared dtype. A non-numeric cell in a value column is fatal and reported with the
column name and the offending rows.
"""

from typing import List

import numpy as np
import pandas as pd
from loguru import logger

from ..exceptions import DataTypeError, LoadError
from .models import ColumnDType, ColumnRole, SheetLayout

# Number of offending cells quoted in a DataTypeError message.
_MAX_REPORTED_CELLS = 5


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def coerce_numeric_column(series: pd.Series, column: str) -> pd.Series:
    """
    Convert ``series`` to float64, failing on any non-blank, non-numeric cell.

    Blank cells (None, NaN, empty strings) become NaN.

    Args:
        series: Column values as read from the sheet
        column: Column name used in the error message

    Returns:
        float64 Series with the same index

    Raises:
        DataTypeError: If a cell cannot be parsed as a number (TYPE_001)
    """
    if pd.api.types.is_bool_dtype(series):
        raise DataTypeError(
            f"Column '{column}' holds booleans, expected numeric measurements",
            context={"column": column, "dtype": str(series.dtype)}
        )

    if pd.api.types.is_numeric_dtype(series):
        return series.astype("float64")

    converted = pd.to_numeric(series, errors="coerce")
    blank = series.map(_is_blank).astype(bool)
    # TRUE/FALSE cells parse as 1/0 but are not measurements.
    booleans = series.map(lambda v: isinstance(v, (bool, np.bool_))).astype(bool)
    invalid = (converted.isna() & ~blank) | booleans

    if invalid.any():
        bad = series[invalid]
        examples = [f"row {idx}: {value!r}" for idx, value in bad.head(_MAX_REPORTED_CELLS).items()]
        raise DataTypeError(
            f"Column '{column}' contains {int(invalid.sum())} non-numeric value(s): {', '.join(examples)}",
            context={"column": column, "invalid_count": int(invalid.sum())}
        )

    return converted.astype("float64")


def _coerce_key_column(series: pd.Series, column: str, dtype: ColumnDType) -> pd.Series:
    if dtype in (ColumnDType.FLOAT, ColumnDType.INT):
        values = coerce_numeric_column(series, column)
        if dtype == ColumnDType.INT and values.notna().all():
            if not (values == values.round()).all():
                raise DataTypeError(
                    f"Key column '{column}' is declared int but holds fractional values",
                    context={"column": column}
                )
            return values.astype("int64")
        return values

    # Keep missing keys missing rather than turning them into the string "None".
    as_text = series.map(lambda v: None if _is_blank(v) else _format_key(v))
    if dtype == ColumnDType.CATEGORY:
        return as_text.astype("category")
    return as_text.astype("object")


def _format_key(value) -> str:
    # Spreadsheet integers often arrive as floats (10.0); label them as 10.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def validate_wide_table(df: pd.DataFrame, layout: SheetLayout) -> pd.DataFrame:
    """
    Validate and coerce a named table against ``layout``.

    Args:
        df: Table whose columns are exactly ``layout.column_names``
        layout: The layout the table was loaded with

    Returns:
        New DataFrame without ignored columns, values as float64 (or int64),
        keys as their declared dtype

    Raises:
        LoadError: If the table columns do not match the layout (LOAD_004)
        DataTypeError: If a value column holds non-numeric cells (TYPE_001)
    """
    actual: List[str] = [str(c) for c in df.columns]
    if actual != layout.column_names:
        raise LoadError(
            "Loaded columns do not match the layout",
            error_code="LOAD_004",
            context={"expected_columns": layout.column_names, "actual_columns": actual}
        )

    result = df.drop(columns=layout.ignored_columns).reset_index(drop=True)

    for spec in layout.columns:
        if spec.role == ColumnRole.IGNORE:
            continue

        if spec.role == ColumnRole.VALUE:
            values = coerce_numeric_column(result[spec.name], spec.name)
            missing = int(values.isna().sum())
            if missing:
                logger.warning(f"Value column '{spec.name}' has {missing} empty cell(s); they are kept as NaN")
            if spec.dtype == ColumnDType.INT and not missing:
                if not (values == values.round()).all():
                    raise DataTypeError(
                        f"Value column '{spec.name}' is declared int but holds fractional values",
                        context={"column": spec.name}
                    )
                values = values.astype("int64")
            result[spec.name] = values
        else:
            result[spec.name] = _coerce_key_column(result[spec.name], spec.name, spec.dtype)

    logger.debug(
        f"Validated table with {len(result)} rows; keys={layout.key_columns}, values={layout.value_columns}"
    )
    return result


__all__ = ['coerce_numeric_column', 'validate_wide_table']
