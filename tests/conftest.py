"""
Pytest configuration for the platetidy test suite.

Provides:
- Loguru to caplog bridge so tests can assert on log records
- Non-interactive matplotlib backend and per-test figure cleanup
- Workbook/CSV writers producing real spreadsheet files in tmp_path
- Small wide/long tables shaped like the plate-reader exports
"""

import contextlib
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# Add the src directory to the Python path
src_path = str(Path(__file__).parent.parent / "src")
sys.path.insert(0, src_path)

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import pytest
from hypothesis import settings
from loguru import logger
from openpyxl import Workbook
from openpyxl.utils.cell import coordinate_from_string, column_index_from_string

settings.register_profile("platetidy", max_examples=50, deadline=None)
settings.load_profile("platetidy")


# ============================================================================
# LOGURU INTEGRATION
# ============================================================================

@pytest.fixture(autouse=True, scope="function")
def capture_loguru_logs_globally(caplog):
    """
    Route Loguru records into pytest's caplog.

    Records keep their Loguru level so ``record.levelno`` comparisons against the
    standard ``logging`` constants work.
    """
    class PropagateHandler(logging.Handler):
        def emit(self, record):
            logging.getLogger(record.name or "platetidy").handle(record)

    caplog.set_level(logging.DEBUG)
    handler_id = logger.add(PropagateHandler(), format="{message}", level="DEBUG", enqueue=False)

    yield

    with contextlib.suppress(ValueError):
        logger.remove(handler_id)


# ============================================================================
# MATPLOTLIB
# ============================================================================

@pytest.fixture(autouse=True)
def close_all_figures():
    """Close figures left open by a test."""
    yield
    plt.close("all")


# ============================================================================
# SPREADSHEET WRITERS
# ============================================================================

@pytest.fixture
def write_workbook(tmp_path):
    """
    Factory writing rows into a real .xlsx file.

    ``write_workbook(rows, start="E29", sheet="Plate 1", name="plate.xlsx",
    extra_sheets=None)`` puts ``rows[0][0]`` at ``start`` and returns the path.
    ``None`` values leave the cell empty.
    """
    def _write(
        rows: Sequence[Sequence[Any]],
        start: str = "A1",
        sheet: str = "Sheet1",
        name: str = "plate.xlsx",
        extra_sheets: Optional[Dict[str, Sequence[Sequence[Any]]]] = None,
    ) -> Path:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet

        column_letter, first_row = coordinate_from_string(start)
        first_col = column_index_from_string(column_letter)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is not None:
                    worksheet.cell(row=first_row + r, column=first_col + c, value=value)

        for title, extra_rows in (extra_sheets or {}).items():
            extra = workbook.create_sheet(title)
            for row in extra_rows:
                extra.append(list(row))

        path = tmp_path / name
        workbook.save(path)
        return path

    return _write


@pytest.fixture
def write_csv(tmp_path):
    """Factory writing rows (no header interpretation) to a .csv file."""
    def _write(rows: Sequence[Sequence[Any]], name: str = "plate.csv") -> Path:
        path = tmp_path / name
        lines = [",".join("" if v is None else str(v) for v in row) for row in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


# ============================================================================
# SAMPLE DATA
# ============================================================================

LPS_CONDITIONS: List[str] = [
    "no_beads",
    "beads_dex_2um",
    "beads_dex_0.5um",
    "beads_dex_0.1um",
    "beads_res_0.5nm",
    "beads_res_0.25nm",
    "beads_res_0.05nm",
    "beads_PBS",
]


@pytest.fixture
def lps_rows() -> List[List[float]]:
    """Four replicate rows of eight conditions, like the E29:L32 block of the LPS export."""
    return [
        [102.0, 5400.0, 4100.0, 3300.0, 2800.0, 2500.0, 2100.0, 6100.0],
        [98.0, 5600.0, 4300.0, 3100.0, 2900.0, 2300.0, 2000.0, 6300.0],
        [110.0, 5200.0, 3900.0, 3500.0, 2700.0, 2600.0, 2200.0, 5900.0],
        [95.0, 5800.0, 4200.0, 3200.0, 3000.0, 2400.0, 2300.0, 6200.0],
    ]


@pytest.fixture
def lps_layout_dict() -> Dict[str, Any]:
    return {
        "cell_range": "E29:L32",
        "columns": [{"name": name} for name in LPS_CONDITIONS],
    }


@pytest.fixture
def efferocytosis_rows() -> List[List[Any]]:
    """
    A C24:N34-shaped block: one plate column per (treatment, timepoint), with
    treatment and timepoint in the first two rows, three unused rows, then six
    replicate readings.
    """
    treatments = ["PBS", "Dex 2 uM", "Dex 0.5 uM", "Dex 0.1 uM"]
    timepoints = ["10min", "40min", "80min"]
    columns = [(t, tp) for tp in timepoints for t in treatments]

    rows: List[List[Any]] = [
        [t for t, _ in columns],
        [tp for _, tp in columns],
        [None for _ in columns],
        [None for _ in columns],
        [None for _ in columns],
    ]
    for replicate in range(6):
        rows.append([
            float(1000 + 100 * i + 10 * replicate) for i in range(len(columns))
        ])
    return rows


@pytest.fixture
def efferocytosis_layout_dict() -> Dict[str, Any]:
    return {
        "cell_range": "C24:N34",
        "transpose": True,
        "columns": (
            [{"name": "treatment", "role": "key"}, {"name": "timepoint", "role": "key"}]
            + [{"name": f"blank_{i}", "role": "ignore"} for i in range(1, 4)]
            + [{"name": f"rep_{i}"} for i in range(1, 7)]
        ),
    }


@pytest.fixture
def worm_frame() -> pd.DataFrame:
    """Already-long worm mobility table: one row per worm."""
    records = []
    speeds = iter([0.21, 0.19, 0.25, 0.18, 0.30, 0.28, 0.33, 0.27, 0.15, 0.17, 0.16, 0.14,
                   0.22, 0.24, 0.20, 0.23, 0.26, 0.29, 0.31, 0.25, 0.12, 0.13, 0.11, 0.10])
    for day in (1, 2, 3):
        for worm_type in ("N2", "mutant"):
            for plasmid in ("empty", "rescue"):
                for _ in range(2):
                    records.append({
                        "worm_type": worm_type,
                        "plasmid": plasmid,
                        "day": day,
                        "average_speed": next(speeds),
                    })
    return pd.DataFrame(records)


@pytest.fixture
def simple_wide() -> pd.DataFrame:
    """Three replicates of three conditions with easy statistics."""
    return pd.DataFrame({
        "a": [1.0, 2.0, 3.0],
        "b": [2.0, 4.0, 6.0],
        "c": [10.0, 10.0, 10.0],
    })
