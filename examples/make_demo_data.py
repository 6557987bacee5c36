#!/usr/bin/env python
"""
Write demo workbooks shaped like the plate-reader exports the example configs expect.

Creates, under ``examples/data``:
- lps_testdata.xlsx: four replicate wells of eight bead conditions in E29:L32
- eff_dex_test.xlsx: a C24:N34 block with one plate column per (treatment, timepoint)
- worm_speeds.xlsx: an already-long sheet of worm speeds with a header row

The readings are random but seeded, so repeated runs produce the same files.
"""

import argparse
from pathlib import Path

import numpy as np
from loguru import logger
from openpyxl import Workbook

LPS_MEANS = {
    "no_beads": 100.0,
    "beads_dex_2um": 5500.0,
    "beads_dex_0.5um": 4100.0,
    "beads_dex_0.1um": 3300.0,
    "beads_res_0.5nm": 2800.0,
    "beads_res_0.25nm": 2450.0,
    "beads_res_0.05nm": 2150.0,
    "beads_PBS": 6100.0,
}

TREATMENT_MEANS = {"PBS": 900.0, "Dex 2 uM": 2600.0, "Dex 0.5 uM": 2100.0, "Dex 0.1 uM": 1500.0}
TIMEPOINT_GAIN = {"10min": 1.0, "40min": 1.8, "80min": 2.4}


def write_lps(path: Path, rng: np.random.Generator) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet["A1"] = "Plate reader export"
    sheet["A28"] = "Fluorescence"
    for col, mean in enumerate(LPS_MEANS.values(), start=5):
        for row in range(29, 33):
            sheet.cell(row=row, column=col, value=round(float(rng.normal(mean, mean * 0.05)), 1))
    workbook.save(path)


def write_efferocytosis(path: Path, rng: np.random.Generator) -> None:
    workbook = Workbook()
    sheet = workbook.active
    col = 3
    for timepoint, gain in TIMEPOINT_GAIN.items():
        for treatment, mean in TREATMENT_MEANS.items():
            sheet.cell(row=24, column=col, value=treatment)
            sheet.cell(row=25, column=col, value=timepoint)
            for row in range(29, 35):
                value = rng.normal(mean * gain, mean * 0.08)
                sheet.cell(row=row, column=col, value=round(float(value), 1))
            col += 1
    workbook.save(path)


def write_worms(path: Path, rng: np.random.Generator) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Sheet1"
    sheet.append(["worm_type", "plasmid", "day", "average_speed"])
    base = {("N2", "empty"): 0.22, ("N2", "rescue"): 0.23, ("mutant", "empty"): 0.12, ("mutant", "rescue"): 0.20}
    for day in (1, 2, 3):
        for (worm_type, plasmid), speed in base.items():
            for _ in range(8):
                value = max(0.0, rng.normal(speed - 0.02 * (day - 1), 0.03))
                sheet.append([worm_type, plasmid, day, round(float(value), 3)])
    workbook.save(path)


def main():
    parser = argparse.ArgumentParser(description="Write demo plate-reader workbooks")
    parser.add_argument('--out-dir', type=str, default=str(Path(__file__).parent / "data"),
                        help='Directory to write the workbooks to')
    parser.add_argument('--seed', type=int, default=233, help='Random seed for the readings')
    args = parser.parse_args()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(args.seed)

    write_lps(out_dir / "lps_testdata.xlsx", rng)
    write_efferocytosis(out_dir / "eff_dex_test.xlsx", rng)
    write_worms(out_dir / "worm_speeds.xlsx", rng)
    logger.info("Wrote demo workbooks to {}", out_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
