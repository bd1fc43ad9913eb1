# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from noise_tables.excel.grid import Sheet
from noise_tables.logging.init import reset_logging

SOURCE_HEADER = ["Name", "Type", "31.5", "63", "125", "250", "500", "1000", "2000", "4000", "8000",
                 "Leq", "Lmax", "Coordinates", "Description"]


def source_row(
    name: str | None = None,
    marker: str | None = None,
    values: list[float] | None = None,
    coordinates: str | None = None,
    description: str | None = None,
    band_31: float | None = None,
) -> list:
    """One source sheet row: A name, B marker, C 31.5 Hz, D..M values, N coordinates, O description."""
    vals = list(values) if values is not None else [None] * 10
    vals += [None] * (10 - len(vals))
    return [name, marker, band_31, *vals, coordinates, description]


def point_block(
    name: str,
    leq: float,
    coordinates: str = "10.0:20.0:1.5",
    description: str | None = None,
    level_label: str = "Noise level, day",
    extra: list[list] | None = None,
) -> list[list]:
    """Point group: level (named), limit, excess rows plus optional extra rows."""
    values = [30.0, 31.0, 32.0, 33.0, 34.0, 35.0, 36.0, 37.0, leq, leq + 10]
    rows = [
        source_row(name, level_label, values, coordinates, description, band_31=29.0),
        source_row(None, "Limit value", [45.0] * 8 + [45.0, 60.0]),
        source_row(None, "Excess", [0.0] * 8 + [leq - 45.0, 0.0]),
    ]
    rows.extend(extra or [])
    return rows


def write_source_workbook(path: Path, rows: list[list], sheet_name: str = "SHEET2") -> Path:
    """Write a source workbook whose ``sheet_name`` holds the header row plus ``rows``."""
    frame = pd.DataFrame([SOURCE_HEADER, *rows])
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([["cover"]]).to_excel(writer, sheet_name="SHEET1", header=False, index=False)
        frame.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


def make_sheet(rows: list[list], name: str = "Data") -> Sheet:
    """Grid sheet from plain lists (None = absent cell, [] = gap)."""
    sheet = Sheet(name)
    for i, values in enumerate(rows):
        present = {c: v for c, v in enumerate(values) if v is not None}
        if not present:
            continue
        row = sheet.ensure_row(i)
        for c, v in present.items():
            row.set(c, v)
    return sheet


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("NOISE_TABLES_CONFIG", raising=False)
        monkeypatch.delenv("NOISE_TABLES_SOURCE_DIR", raising=False)
        yield p


@pytest.fixture()
def data_dir(temp_workdir: Path) -> Path:
    return temp_workdir / "data"


@pytest.fixture()
def thermal_day_file(data_dir: Path) -> Path:
    rows = [
        *point_block("PT-1", 50.0, description="Facade", extra=[
            source_row(None, "Required isolation", [5.0] * 10),
            source_row(None, "Other row", [1.0] * 10),
            source_row(None, "Barrier isolation", [7.0] * 10),
        ]),
        *point_block("PT-2", 40.0, coordinates="5:5:-2.25"),
    ]
    return write_source_workbook(data_dir / "Project_SPL_RP_TH_day_FINAL.xlsx", rows)


@pytest.fixture()
def ventilation_night_file(data_dir: Path) -> Path:
    rows = [
        *point_block("PT-1", 44.0, coordinates="10.0:20.0:1.5", level_label="Noise level, night"),
        *point_block("PT-10", 39.5, coordinates="1:2:3", description="Roof",
                     level_label="Noise level, night"),
    ]
    return write_source_workbook(data_dir / "Project_SPL_RP_OV_night_FINAL.xlsx", rows)


@pytest.fixture()
def broken_file(data_dir: Path) -> Path:
    path = data_dir / "Broken_SPL_RP_POS_day_FINAL.xlsx"
    path.write_bytes(b"this is not a workbook")
    return path
