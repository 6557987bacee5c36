"""
Spreadsheet loading for plate-reader exports.

This module is the Loader stage of the pipeline. It reads a rectangular block of
cells from a workbook, checks the block against an explicit ``SheetLayout`` and
returns a wide table with named, typed columns.

Reading is delegated to openpyxl for ``.xlsx``/``.xlsm`` workbooks (cell ranges are
addressed directly, so blank leading rows and columns never shift the block) and to
pandas for ``.csv`` exports. Every failure is a ``LoadError`` and aborts the run.

Usage Example:
    >>> from platetidy.io.loaders import load_wide_table
    >>> from platetidy.schema.models import SheetLayout
    >>> layout = SheetLayout.model_validate({
    ...     "cell_range": "E29:L32",
    ...     "columns": [{"name": name} for name in conditions],
    ... })
    >>> wide = load_wide_table("lps_testdata.xlsx", layout)
"""

from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd
from loguru import logger
from openpyxl import load_workbook

from platetidy.exceptions import LoadError, log_and_raise
from platetidy.schema.models import CellRange, SheetLayout, _range_bounds
from platetidy.schema.validator import validate_wide_table

PathLike = Union[str, Path]

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}


def _check_file(path: Path) -> None:
    if not path.exists():
        log_and_raise(LoadError(
            f"Spreadsheet not found: {path}",
            error_code="LOAD_001",
            context={"file_path": path}
        ), logger)
    if path.suffix.lower() not in EXCEL_SUFFIXES | CSV_SUFFIXES:
        raise LoadError(
            f"Unsupported spreadsheet format '{path.suffix}'",
            error_code="LOAD_002",
            context={"file_path": path, "supported": sorted(EXCEL_SUFFIXES | CSV_SUFFIXES)}
        )


def _uncovered_range_error(path: Path, bounds: CellRange, max_row: int, max_col: int) -> LoadError:
    return LoadError(
        f"Sheet only has {max_row} row(s) x {max_col} column(s) of data, "
        f"which does not cover the requested range",
        error_code="LOAD_003",
        context={
            "file_path": path,
            "requested_rows": f"{bounds.min_row}-{bounds.max_row}",
            "requested_cols": f"{bounds.min_col}-{bounds.max_col}",
        }
    )


def _read_excel_rows(path: Path, sheet: Union[str, int], bounds: Optional[CellRange]) -> List[List[Any]]:
    try:
        workbook = load_workbook(path, data_only=True)
    except Exception as e:
        raise LoadError(
            f"Could not open workbook: {e}",
            error_code="LOAD_002",
            context={"file_path": path}
        ) from e

    try:
        if isinstance(sheet, int):
            if sheet >= len(workbook.worksheets):
                raise LoadError(
                    f"Workbook has {len(workbook.worksheets)} sheet(s), no sheet at index {sheet}",
                    error_code="LOAD_002",
                    context={"file_path": path, "sheet": sheet}
                )
            worksheet = workbook.worksheets[sheet]
        else:
            if sheet not in workbook.sheetnames:
                raise LoadError(
                    f"Sheet '{sheet}' not found",
                    error_code="LOAD_002",
                    context={"file_path": path, "sheet": sheet, "available": workbook.sheetnames}
                )
            worksheet = workbook[sheet]

        # Read the extent before iterating: iter_rows creates cells and would grow it.
        max_row, max_col = worksheet.max_row, worksheet.max_column
        if bounds is None:
            bounds = CellRange(1, 1, max_col, max_row)
        elif bounds.max_row > max_row or bounds.max_col > max_col:
            raise _uncovered_range_error(path, bounds, max_row, max_col)

        return [
            list(row)
            for row in worksheet.iter_rows(
                min_row=bounds.min_row,
                max_row=bounds.max_row,
                min_col=bounds.min_col,
                max_col=bounds.max_col,
                values_only=True,
            )
        ]
    finally:
        workbook.close()


def _read_csv_frame(path: Path, bounds: Optional[CellRange]) -> pd.DataFrame:
    try:
        frame = pd.read_csv(path, header=None, dtype=object, skip_blank_lines=False)
    except pd.errors.EmptyDataError:
        frame = pd.DataFrame()
    except Exception as e:
        raise LoadError(
            f"Could not read CSV file: {e}",
            error_code="LOAD_002",
            context={"file_path": path}
        ) from e

    if bounds is None:
        return frame

    max_row, max_col = frame.shape
    if bounds.max_row > max_row or bounds.max_col > max_col:
        raise _uncovered_range_error(path, bounds, max_row, max_col)

    return frame.iloc[bounds.min_row - 1:bounds.max_row, bounds.min_col - 1:bounds.max_col]


def read_region(
    file_path: PathLike,
    sheet: Union[str, int] = 0,
    cell_range: Optional[str] = None
) -> pd.DataFrame:
    """
    Read a block of cells without interpreting it.

    Args:
        file_path: Workbook (.xlsx/.xlsm) or .csv export
        sheet: Sheet name or 0-based index (ignored for CSV)
        cell_range: A1 range such as ``"C24:N34"``; None reads the whole used area

    Returns:
        DataFrame with a RangeIndex on both axes holding raw cell values

    Raises:
        LoadError: LOAD_001 missing file, LOAD_002 unreadable workbook or sheet,
            LOAD_003 sheet does not cover ``cell_range``
    """
    path = Path(file_path)
    logger.debug(f"Reading region {cell_range or '<whole sheet>'} of sheet {sheet!r} from {path}")

    _check_file(path)
    try:
        bounds = _range_bounds(cell_range) if cell_range else None
    except ValueError as e:
        raise LoadError(str(e), error_code="LOAD_003", context={"file_path": path}) from e

    if path.suffix.lower() in CSV_SUFFIXES:
        region = _read_csv_frame(path, bounds)
    else:
        region = pd.DataFrame(_read_excel_rows(path, sheet, bounds))

    if cell_range is None:
        region = region.dropna(how="all").dropna(axis=1, how="all")

    region = region.reset_index(drop=True)
    region.columns = range(region.shape[1])
    logger.debug(f"Read region of shape {region.shape} from {path.name}")
    return region


def _header_names(row: pd.Series) -> List[str]:
    names = []
    for value in row:
        if value is None or (isinstance(value, float) and pd.isna(value)):
            names.append("")
        elif isinstance(value, float) and value.is_integer():
            names.append(str(int(value)))
        else:
            names.append(str(value).strip())
    return names


def load_wide_table(file_path: PathLike, layout: SheetLayout) -> pd.DataFrame:
    """
    Load a block of a spreadsheet as a named, typed wide table.

    Steps: read the layout's cell range, transpose if requested, take the header
    row if requested, check the column count, name the columns, then coerce them
    with ``validate_wide_table``.

    Args:
        file_path: Spreadsheet to read
        layout: Layout describing the block

    Returns:
        Wide DataFrame: one row per replicate (or record), key and value columns

    Raises:
        LoadError: Any read failure, or a block whose columns do not match the
            layout (LOAD_004)
        DataTypeError: A value column holds non-numeric cells
    """
    path = Path(file_path)
    logger.info(f"Loading {path.name} with {len(layout.columns)} expected column(s)")

    region = read_region(path, layout.sheet, layout.cell_range)

    if layout.transpose:
        region = region.T.reset_index(drop=True)
        region.columns = range(region.shape[1])

    header: Optional[List[str]] = None
    if layout.header:
        if region.empty:
            raise LoadError(
                "Header requested but the region is empty",
                error_code="LOAD_004",
                context={"file_path": path}
            )
        header = _header_names(region.iloc[0])
        region = region.iloc[1:].reset_index(drop=True)

    if region.shape[1] != len(layout.columns):
        raise LoadError(
            f"Expected {len(layout.columns)} column(s) but the region has {region.shape[1]}",
            error_code="LOAD_004",
            context={
                "file_path": path,
                "expected_columns": layout.column_names,
                "actual_count": region.shape[1],
            }
        )

    if header is not None and header != layout.column_names:
        raise LoadError(
            "Header row does not match the layout column names",
            error_code="LOAD_004",
            context={"file_path": path, "expected_columns": layout.column_names, "actual_columns": header}
        )

    region.columns = layout.column_names
    wide = validate_wide_table(region, layout)

    logger.info(f"Loaded wide table with {wide.shape[0]} row(s) and {wide.shape[1]} column(s)")
    return wide


__all__ = ['read_region', 'load_wide_table']
