"""
Reshaping utilities: wide plate tables to long (tidy) tables.

This module is the Reshaper stage of the pipeline. ``to_long`` turns every
value-bearing cell of a wide table into one row of a long table, tagged with the
column it came from and/or the key columns of its record. It never parses strings:
when a column name packs several keys (``"Dex_2um_10min"``), call
``split_key_column`` on the long table afterwards.

Invariant: a wide table with R rows and C value columns always yields R x C rows.
"""

from typing import Iterable, List, Optional, Sequence, Union

import pandas as pd
from loguru import logger

from platetidy.exceptions import TransformError
from platetidy.schema.validator import coerce_numeric_column

DEFAULT_NAMES_TO = "condition"
DEFAULT_VALUES_TO = "fluorescence_intensity"

# Placeholder column used when the originating column name is not kept.
_DROPPED_NAME = "__platetidy_column__"

ColumnSelection = Union[str, Sequence[str], None]


def as_column_list(columns: ColumnSelection) -> List[str]:
    """Normalize a single column name or a sequence of names to a list."""
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def require_columns(df: pd.DataFrame, columns: Iterable[str], role: str = "required") -> None:
    """
    Raise TransformError (TRANSFORM_006) naming every column of ``columns`` missing from ``df``.
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise TransformError(
            f"Missing {role} column(s): {missing}",
            error_code="TRANSFORM_006",
            context={"expected_columns": list(columns), "actual_columns": list(map(str, df.columns))}
        )


def to_long(
    wide: pd.DataFrame,
    value_columns: ColumnSelection = None,
    key_columns: ColumnSelection = (),
    names_to: Optional[str] = DEFAULT_NAMES_TO,
    values_to: str = DEFAULT_VALUES_TO,
) -> pd.DataFrame:
    """
    Reshape a wide table into a long table.

    Args:
        wide: One row per replicate/record, one column per condition
        value_columns: Columns holding measurements; None means every column that is
            not a key column
        key_columns: Columns carried onto every output row (e.g. treatment, timepoint)
        names_to: Name of the column receiving the originating column name; None
            drops it (the key columns already identify the observation)
        values_to: Name of the measurement column

    Returns:
        Long DataFrame with ``key_columns``, then ``names_to`` (if any), then
        ``values_to``; ``len(wide) * len(value_columns)`` rows. Row order is not
        part of the contract.

    Raises:
        TransformError: Unknown columns (TRANSFORM_006), no value columns
            (TRANSFORM_005) or conflicting column roles/names (TRANSFORM_004)
        DataTypeError: A value column is not numeric
    """
    keys = as_column_list(key_columns)
    require_columns(wide, keys, role="key")

    if value_columns is None:
        values = [c for c in wide.columns if c not in keys]
    else:
        values = as_column_list(value_columns)
        require_columns(wide, values, role="value")

    if not values:
        raise TransformError(
            "No value columns to reshape",
            error_code="TRANSFORM_005",
            context={"actual_columns": list(map(str, wide.columns)), "key_columns": keys}
        )

    overlap = sorted(set(keys) & set(values))
    if overlap:
        raise TransformError(
            f"Column(s) {overlap} cannot be both key and value columns",
            error_code="TRANSFORM_004",
            context={"key_columns": keys, "value_columns": values}
        )

    reserved = [name for name in (names_to, values_to) if name is not None]
    clashes = [name for name in reserved if name in keys or name in values]
    if names_to is not None and names_to == values_to:
        clashes.append(names_to)
    if clashes:
        raise TransformError(
            f"Output column name(s) {sorted(set(clashes))} collide with existing or each other",
            error_code="TRANSFORM_004",
            context={"names_to": names_to, "values_to": values_to, "key_columns": keys}
        )

    frame = wide[keys + values].copy()
    for column in values:
        frame[column] = coerce_numeric_column(frame[column], column)

    long = frame.melt(
        id_vars=keys,
        value_vars=values,
        var_name=names_to if names_to is not None else _DROPPED_NAME,
        value_name=values_to,
    )
    if names_to is None:
        long = long.drop(columns=_DROPPED_NAME)

    logger.debug(
        f"Reshaped {len(wide)} row(s) x {len(values)} value column(s) into {len(long)} long row(s)"
    )
    return long


def split_key_column(
    df: pd.DataFrame,
    column: str,
    into: Sequence[str],
    sep: str = "_",
    from_right: bool = True,
    drop: bool = True,
) -> pd.DataFrame:
    """
    Split a packed key column into several key columns.

    With ``from_right=True`` (the default) only the right-most separators are used,
    so ``"Dex_0.5um_10min"`` split into ``["treatment", "timepoint"]`` gives
    ``"Dex_0.5um"`` and ``"10min"``.

    Args:
        df: Table holding the packed column (usually the long table)
        column: Packed column name
        into: Names of the new columns, left to right
        sep: Separator between parts
        from_right: Split at the right-most separators instead of the left-most
        drop: Remove the packed column

    Returns:
        New DataFrame with ``into`` inserted where ``column`` was

    Raises:
        TransformError: Missing column (TRANSFORM_006), name clash (TRANSFORM_004)
            or a value that does not split into ``len(into)`` parts (TRANSFORM_007)
    """
    targets = list(into)
    require_columns(df, [column], role="packed key")

    if len(targets) < 2:
        raise TransformError(
            "split_key_column needs at least two target columns",
            error_code="TRANSFORM_007",
            context={"column": column, "into": targets}
        )

    existing = [c for c in df.columns if not (drop and c == column)]
    clashes = [name for name in targets if name in existing]
    if clashes or len(set(targets)) != len(targets):
        raise TransformError(
            f"Target column(s) {clashes or targets} already exist or repeat",
            error_code="TRANSFORM_004",
            context={"column": column, "into": targets}
        )

    text = df[column].astype(str)
    n_splits = len(targets) - 1
    parts = text.str.rsplit(sep, n=n_splits) if from_right else text.str.split(sep, n=n_splits)

    bad = parts.map(len) != len(targets)
    if bad.any():
        examples = list(text[bad].unique()[:5])
        raise TransformError(
            f"Value(s) {examples} of '{column}' do not split into {len(targets)} parts on {sep!r}",
            error_code="TRANSFORM_007",
            context={"column": column, "into": targets, "sep": sep}
        )

    pieces = pd.DataFrame(parts.tolist(), columns=targets, index=df.index)
    position = df.columns.get_loc(column)

    result = df.drop(columns=column) if drop else df.copy()
    if not drop:
        position += 1
    for offset, name in enumerate(targets):
        result.insert(position + offset, name, pieces[name])

    logger.debug(f"Split '{column}' into {targets}")
    return result


def interaction_column(
    df: pd.DataFrame,
    columns: Sequence[str],
    sep: str = ":",
    name: Optional[str] = None,
) -> pd.DataFrame:
    """
    Add a column combining several key columns into one label, e.g. ``"N2:empty"``.

    Useful for colouring a chart by a combination of factors.

    Returns:
        New DataFrame with the label column appended (named ``sep.join(columns)``
        unless ``name`` is given)
    """
    sources = as_column_list(columns)
    require_columns(df, sources, role="interaction")
    if not sources:
        raise TransformError("interaction_column needs at least one column", error_code="TRANSFORM_006")

    target = name or sep.join(sources)
    if target in df.columns:
        raise TransformError(
            f"Column '{target}' already exists",
            error_code="TRANSFORM_004",
            context={"columns": sources}
        )

    result = df.copy()
    labels = df[sources[0]].astype(str)
    for source in sources[1:]:
        labels = labels + sep + df[source].astype(str)
    result[target] = labels
    return result


__all__ = [
    'DEFAULT_NAMES_TO',
    'DEFAULT_VALUES_TO',
    'as_column_list',
    'require_columns',
    'to_long',
    'split_key_column',
    'interaction_column',
]
