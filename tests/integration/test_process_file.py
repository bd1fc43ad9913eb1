from __future__ import annotations

import threading
from pathlib import Path

import openpyxl
import pytest

from conftest import point_block, source_row, write_source_workbook
from noise_tables.errors import BatchCancelled, IOFailure, MissingSheet, UnsupportedFile
from noise_tables.excel.reader import list_sheet_names, read_source_sheet
from noise_tables.excel.writer import temp_path_for
from noise_tables.models.config_models import OperationsConfig, RunConfig
from noise_tables.models.excel_file import FileStatus
from noise_tables.services.pipeline import OUTPUT_SHEET_NAME, process_file

OPERATIONS = RunConfig(operations=OperationsConfig(
    remove_required_isolation=True, move_barrier_isolation=True,
))


def _column(ws, letter: str) -> list:
    return [ws[f"{letter}{r}"].value for r in range(1, ws.max_row + 1)]


def test_reader_builds_grid_from_source_sheet(thermal_day_file: Path):
    assert list_sheet_names(thermal_day_file) == ["SHEET1", "SHEET2"]
    sheet = read_source_sheet(thermal_day_file, "SHEET2")

    assert sheet.cell(0, 0).value == "Name"
    assert sheet.cell(1, 0).value == "PT-1"
    assert sheet.cell(1, 11).value == 50.0
    assert sheet.cell(1, 13).value == "10.0:20.0:1.5"
    assert sheet.cell(2, 0) is None  # blank cell stays absent


def test_reader_missing_sheet(thermal_day_file: Path):
    with pytest.raises(MissingSheet):
        read_source_sheet(thermal_day_file, "SHEET9")


def test_reader_unreadable_file(broken_file: Path):
    with pytest.raises(IOFailure):
        read_source_sheet(broken_file, "SHEET2")


def test_process_file_with_row_operations(thermal_day_file: Path):
    result = process_file(thermal_day_file, OPERATIONS)

    assert result.status is FileStatus.SUCCESS
    assert result.points == 2
    assert result.rows_affected == 2
    assert result.output_path == thermal_day_file.with_name("Project_Memo_SPL_RP_TH_day_FINAL.xlsx")
    assert result.output_path.exists()
    assert not temp_path_for(result.output_path).exists()

    wb = openpyxl.load_workbook(result.output_path)
    assert wb.sheetnames == [OUTPUT_SHEET_NAME]
    ws = wb[OUTPUT_SHEET_NAME]

    assert ws["B1"].value == "Name"
    assert ws["C2"].value == "31.5"
    assert ws.column_dimensions["C"].hidden
    merged = {str(r) for r in ws.merged_cells.ranges}
    assert {"C1:K1", "B1:B2", "L1:L2", "M1:M2", "B5:M5", "B11:M11"} <= merged

    assert _column(ws, "B")[3:] == [
        "Noise level, day",
        "PT-1 Facade, elevation +1.500",
        "Barrier isolation",
        "Limit value",
        "Excess",
        "Other row",
        "Noise level, day",
        "PT-2, elevation -2.250",
        "Limit value",
        "Excess",
    ]
    assert ws["A4"].value == "PT-1"
    assert ws["D6"].value == 7
    assert ws["B5"].font.bold
    assert ws["A4"].border.left.style == "thin"
    assert ws.row_dimensions[4].height == pytest.approx(22.68, abs=0.01)


def test_process_file_without_operations_keeps_all_rows(thermal_day_file: Path):
    result = process_file(thermal_day_file, RunConfig())
    ws = openpyxl.load_workbook(result.output_path)[OUTPUT_SHEET_NAME]
    markers = _column(ws, "B")
    assert "Required isolation" in markers
    assert markers.index("Barrier isolation") > markers.index("Other row")
    assert result.rows_affected == 0


def test_process_file_applies_correction(data_dir: Path):
    path = write_source_workbook(data_dir / "S_SPL_RP_POS_night_FINAL.xlsx", point_block("PT-4", 48.0))
    config = RunConfig(operations=OperationsConfig(correction_value=2.5))

    result = process_file(path, config)

    ws = openpyxl.load_workbook(result.output_path)[OUTPUT_SHEET_NAME]
    assert _column(ws, "B")[-2:] == ["Correction for existing/prospective position", "Excess"]
    last = ws.max_row
    assert ws[f"D{last - 1}"].value == 2.5
    assert ws[f"L{last}"].value == pytest.approx(48.0 - 45.0 + 2.5)


def test_ventilation_limit_labels_get_correction_suffix(ventilation_night_file: Path):
    result = process_file(ventilation_night_file, RunConfig())
    ws = openpyxl.load_workbook(result.output_path)[OUTPUT_SHEET_NAME]
    assert _column(ws, "B").count("Limit value incl. -5 dB correction") == 2
    assert ws.max_row == 3 + 2 * 4


def test_unsupported_file_name(data_dir: Path):
    path = write_source_workbook(data_dir / "notes.xlsx", [source_row("PT-1", "Noise level, day")])
    with pytest.raises(UnsupportedFile):
        process_file(path, RunConfig())


def test_missing_source_sheet_writes_nothing(data_dir: Path):
    path = write_source_workbook(data_dir / "A_SPL_RP_TH_night_FINAL.xlsx", point_block("PT-1", 40.0),
                                 sheet_name="Other")
    with pytest.raises(MissingSheet):
        process_file(path, RunConfig())
    assert not (data_dir / "A_Memo_SPL_RP_TH_night_FINAL.xlsx").exists()


def test_cancelled_file_writes_nothing(thermal_day_file: Path):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(BatchCancelled):
        process_file(thermal_day_file, OPERATIONS, cancel)
    assert not thermal_day_file.with_name("Project_Memo_SPL_RP_TH_day_FINAL.xlsx").exists()
