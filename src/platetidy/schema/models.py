"""
Sheet layout models using Pydantic for validation.

A plate-reader export only makes sense once you know which block of cells holds the
measurements and what each column of that block means. These models make that
knowledge explicit: a ``SheetLayout`` names the sheet and the A1 cell range, and
lists one ``ColumnSpec`` per column of the range with its role and dtype. Loading
fails fast when the sheet does not match, instead of silently misaligning columns.

Example:
    >>> layout = SheetLayout.model_validate({
    ...     "cell_range": "E29:L32",
    ...     "columns": [{"name": "no_beads"}, {"name": "beads_PBS"}],
    ... })
    >>> layout.value_columns
    ['no_beads', 'beads_PBS']
"""

from enum import Enum
from typing import List, NamedTuple, Optional, Union

from openpyxl.utils.cell import range_boundaries
from pydantic import BaseModel, Field, field_validator, model_validator

from platetidy.exceptions import ConfigError


class ColumnRole(str, Enum):
    """What a column of the loaded region holds."""
    KEY = "key"
    VALUE = "value"
    IGNORE = "ignore"


class ColumnDType(str, Enum):
    """Supported column dtypes."""
    FLOAT = "float"
    INT = "int"
    STR = "str"
    CATEGORY = "category"


NUMERIC_DTYPES = (ColumnDType.FLOAT, ColumnDType.INT)


class CellRange(NamedTuple):
    """1-based, inclusive bounds of an A1-style cell range."""
    min_col: int
    min_row: int
    max_col: int
    max_row: int

    @property
    def n_rows(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def n_cols(self) -> int:
        return self.max_col - self.min_col + 1


def _range_bounds(text: str) -> CellRange:
    """Parse ``text`` into a CellRange, raising ValueError when it is not a full A1 range."""
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"Cell range must be a non-empty string like 'C24:N34', got {text!r}")

    try:
        min_col, min_row, max_col, max_row = range_boundaries(text.strip().upper())
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid cell range {text!r}: {e}") from e

    if None in (min_col, min_row, max_col, max_row):
        raise ValueError(
            f"Cell range {text!r} must give both corners, e.g. 'C24:N34' (whole rows or columns are not supported)"
        )

    return CellRange(min_col, min_row, max_col, max_row)


def parse_cell_range(text: str) -> CellRange:
    """
    Parse an Excel A1 range such as ``"C24:N34"``.

    Args:
        text: Range text; a single cell (``"B2"``) is a 1×1 range

    Returns:
        CellRange with 1-based inclusive bounds

    Raises:
        ConfigError: If the text is not a valid two-corner range (CONFIG_003)
    """
    try:
        return _range_bounds(text)
    except ValueError as e:
        raise ConfigError(
            str(e),
            error_code="CONFIG_003",
            context={"cell_range": text}
        ) from e


class ColumnSpec(BaseModel):
    """
    One column of a loaded region.

    Attributes:
        name: Column name in the loaded table
        role: key (grouping metadata), value (numeric measurement) or ignore (dropped)
        dtype: Target dtype; defaults to float for values and str for keys
        description: Optional human-readable note
    """
    name: str
    role: ColumnRole = ColumnRole.VALUE
    dtype: Optional[ColumnDType] = None
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Column name must not be empty")
        return v

    @model_validator(mode='after')
    def default_dtype(self):
        if self.dtype is None:
            self.dtype = ColumnDType.STR if self.role == ColumnRole.KEY else ColumnDType.FLOAT
        if self.role == ColumnRole.KEY and self.dtype == ColumnDType.FLOAT:
            raise ValueError(f"Key column '{self.name}' cannot be float; use int, str or category")
        if self.role == ColumnRole.VALUE and self.dtype not in NUMERIC_DTYPES:
            raise ValueError(
                f"Value column '{self.name}' must have a numeric dtype (float or int), got {self.dtype.value}"
            )
        return self


class SheetLayout(BaseModel):
    """
    Where the data lives in a workbook and what its columns mean.

    Attributes:
        sheet: Sheet name or 0-based sheet index
        cell_range: A1 range of the block to read; None reads the whole used sheet
        header: Take column names from the first row of the block and check them
            against ``columns``
        transpose: Turn plate columns into records before naming (the time-course
            layout stores treatment and timepoint in the first rows of each column)
        columns: One entry per column of the (possibly transposed) block, in order
    """
    sheet: Union[str, int] = 0
    cell_range: Optional[str] = None
    header: bool = False
    transpose: bool = False
    columns: List[ColumnSpec] = Field(min_length=1)

    @field_validator('sheet')
    @classmethod
    def validate_sheet(cls, v):
        if isinstance(v, int) and v < 0:
            raise ValueError(f"Sheet index must be >= 0, got {v}")
        return v

    @field_validator('cell_range')
    @classmethod
    def validate_cell_range(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        _range_bounds(v)
        return v.strip().upper()

    @model_validator(mode='after')
    def validate_columns(self):
        names = [column.name for column in self.columns]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Column names must be unique, duplicated: {duplicates}")

        if not any(column.role == ColumnRole.VALUE for column in self.columns):
            raise ValueError("Layout needs at least one value column")
        return self

    @property
    def bounds(self) -> Optional[CellRange]:
        return _range_bounds(self.cell_range) if self.cell_range else None

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def key_columns(self) -> List[str]:
        return [c.name for c in self.columns if c.role == ColumnRole.KEY]

    @property
    def value_columns(self) -> List[str]:
        return [c.name for c in self.columns if c.role == ColumnRole.VALUE]

    @property
    def ignored_columns(self) -> List[str]:
        return [c.name for c in self.columns if c.role == ColumnRole.IGNORE]

    def get_column(self, name: str) -> ColumnSpec:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)


__all__ = [
    'CellRange',
    'ColumnDType',
    'ColumnRole',
    'ColumnSpec',
    'SheetLayout',
    'parse_cell_range',
]
