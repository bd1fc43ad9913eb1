from __future__ import annotations

import json
import threading
import zipfile
from pathlib import Path
from unittest.mock import patch

import openpyxl
import pytest

from conftest import point_block, write_source_workbook
from noise_tables.errors import InvalidPath
from noise_tables.logging.error_log import ErrorLogBuffer
from noise_tables.models.config_models import OutputsConfig, RunConfig, SummaryShape
from noise_tables.models.file_category import FileCategory
from noise_tables.models.processing_result import RunStatus
from noise_tables.services.aggregator import create_summary_table
from noise_tables.services.orchestrator import process_all, scan_source_files, select_files
from noise_tables.services.progress import EventKind, ProgressChannel
from noise_tables.services.worker import BatchWorker

AGGREGATES = RunConfig(outputs=OutputsConfig(point_list=True, summary_table=True))


def _corrupt_xls(data_dir: Path) -> Path:
    path = data_dir / "Bad_SPL_RP_OV_day_FINAL.xls"
    path.write_bytes(b"not a biff workbook" * 64)
    return path


def _damaged_xlsx(data_dir: Path) -> Path:
    # a zip that looks like xlsx but lacks the content types part
    path = data_dir / "Bad_SPL_RP_POS_night_FINAL.xlsx"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("xl/workbook.xml", "<workbook/>")
    return path


DAMAGED_WORKBOOKS = pytest.mark.parametrize("make_bad", [_corrupt_xls, _damaged_xlsx], ids=["xls", "xlsx"])


def test_scan_source_files(data_dir: Path, thermal_day_file: Path, ventilation_night_file: Path):
    (data_dir / "readme.txt").write_text("ignore")
    (data_dir / "Project_Memo_SPL_RP_TH_day_FINAL.xlsx").write_bytes(b"")
    (data_dir / "nested_SPL_RP_TH_day_FINAL.xlsx").mkdir()

    assert scan_source_files(data_dir) == [ventilation_night_file, thermal_day_file]


def test_scan_missing_directory(temp_workdir: Path):
    with pytest.raises(InvalidPath, match="Directory not found"):
        scan_source_files(temp_workdir / "absent")


def test_select_files_drops_unselected_categories(thermal_day_file: Path, ventilation_night_file: Path):
    config = RunConfig(categories=(FileCategory.VENTILATION_NIGHT,))
    assert select_files([thermal_day_file, ventilation_night_file], config) == [ventilation_night_file]


def test_run_success_with_aggregates(data_dir: Path, thermal_day_file: Path, ventilation_night_file: Path,
                                     tmp_path: Path):
    channel = ProgressChannel()
    result = process_all(data_dir, config=AGGREGATES, progress=channel,
                         error_log=ErrorLogBuffer(tmp_path / "logs"))

    assert result.status is RunStatus.COMPLETED
    assert (result.success_files, result.failed_files) == (2, 0)
    assert [s.output_name for s in result.file_stats] == [
        "Project_Memo_SPL_RP_OV_night_FINAL.xlsx",
        "Project_Memo_SPL_RP_TH_day_FINAL.xlsx",
    ]
    percents = [e.percent for e in channel.drain() if e.kind is EventKind.PERCENT]
    assert percents == [0.0, 10.0, 50.0, 90.0, 90.0, 95.0, 100.0]
    assert not (tmp_path / "logs").exists()

    # point list comes from the ventilation file
    assert result.point_list_path == (
        data_dir / "data_Calculation point list" / "data_Calculation point list.xlsx"
    )
    ws = openpyxl.load_workbook(result.point_list_path).active
    assert [ws[f"A{r}"].value for r in range(1, 4)] == ["Point name", "PT-1", "PT-10"]
    assert ws["C3"].value == "Roof"

    # pivot summary: TH day and OV night columns
    folder = "data_Summary table of SPL at calculation points, dBA"
    assert result.summary_table_path == data_dir / folder / f"{folder}.xlsx"
    ws = openpyxl.load_workbook(result.summary_table_path).active
    assert [ws.cell(1, c).value for c in range(1, 5)] == ["Calculation point", "Elevation, m", "TH day", "OV night"]
    assert [ws.cell(3, c).value for c in range(1, 5)] == ["PT-1", 1.5, 50, 44]
    assert [ws.cell(4, c).value for c in range(1, 5)] == ["PT-2", -2.25, 40, "-"]
    assert [ws.cell(5, c).value for c in range(1, 5)] == ["PT-10", 3, "-", 39.5]


def test_run_block_summary(data_dir: Path, thermal_day_file: Path, ventilation_night_file: Path):
    config = RunConfig(outputs=OutputsConfig(summary_table=True, summary_shape=SummaryShape.BLOCK))
    result = process_all(data_dir, config=config)

    ws = openpyxl.load_workbook(result.summary_table_path).active
    assert [ws.cell(1, c).value for c in range(1, 6)] == ["Code, period", "Value", "PT-1", "PT-2", "PT-10"]
    assert ws.max_row == 1 + 2 * 3


def test_run_partial_failure(data_dir: Path, thermal_day_file: Path, broken_file: Path, tmp_path: Path):
    result = process_all(data_dir, config=AGGREGATES, error_log=ErrorLogBuffer(tmp_path / "logs"))

    assert result.status is RunStatus.PARTIAL
    assert (result.success_files, result.failed_files) == (1, 1)
    failed = [s for s in result.file_stats if s.status == "failed"]
    assert [s.file_name for s in failed] == [broken_file.name]
    # the unreadable file is skipped by the summary as well
    assert result.summary_table_path is not None

    logs = list((tmp_path / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert {r["file"] for r in records} == {broken_file.name}
    assert {r["error_type"] for r in records} == {"IO_FAILURE"}


@DAMAGED_WORKBOOKS
def test_summary_skips_damaged_workbook(data_dir: Path, thermal_day_file: Path, make_bad):
    bad = make_bad(data_dir)
    output = create_summary_table(data_dir, [thermal_day_file, bad])

    assert output is not None and output.exists()
    ws = openpyxl.load_workbook(output).active
    assert [ws.cell(1, c).value for c in range(1, 4)] == ["Calculation point", "Elevation, m", "TH day"]


@DAMAGED_WORKBOOKS
def test_run_with_damaged_workbook_is_partial(data_dir: Path, thermal_day_file: Path, make_bad,
                                              tmp_path: Path):
    bad = make_bad(data_dir)
    result = process_all(data_dir, config=AGGREGATES, error_log=ErrorLogBuffer(tmp_path / "logs"))

    assert result.status is RunStatus.PARTIAL
    assert (result.success_files, result.failed_files) == (1, 1)
    assert [s.file_name for s in result.file_stats if s.status == "failed"] == [bad.name]
    assert result.summary_table_path is not None
    assert list((tmp_path / "logs").glob("errors-*.log"))


def test_aggregate_without_points_is_partial(data_dir: Path):
    write_source_workbook(data_dir / "E_SPL_RP_TH_day_FINAL.xlsx", [[None, "Limit value"] + [1.0] * 11])
    result = process_all(data_dir, config=AGGREGATES)
    assert result.success_files == 1
    assert result.status is RunStatus.PARTIAL
    assert result.aggregate_failures == ["point_list", "summary_table"]


def test_empty_directory_completes(data_dir: Path):
    result = process_all(data_dir)
    assert result.status is RunStatus.COMPLETED
    assert result.total_files == 0


def test_cancel_before_start_processes_nothing(data_dir: Path, thermal_day_file: Path):
    cancel = threading.Event()
    cancel.set()
    channel = ProgressChannel()

    result = process_all(data_dir, config=AGGREGATES, progress=channel, cancel=cancel)

    assert result.status is RunStatus.CANCELLED
    assert result.total_files == 0
    assert result.point_list_path is None
    assert channel.last_percent == 10.0
    assert not thermal_day_file.with_name("Project_Memo_SPL_RP_TH_day_FINAL.xlsx").exists()


def test_invalid_directory_aborts(temp_workdir: Path):
    with pytest.raises(InvalidPath):
        process_all(temp_workdir / "absent")


class TestBatchWorker:
    def test_worker_reports_lines_percent_and_result(self, data_dir: Path, thermal_day_file: Path):
        worker = BatchWorker(data_dir, config=RunConfig()).start()
        result = worker.wait(timeout=60)

        assert result is not None and result.status is RunStatus.COMPLETED
        events = worker.channel.drain()
        assert events[-1].kind is EventKind.FINISHED
        assert events[-1].result is result
        assert worker.channel.last_percent == 100.0
        lines = [e.text for e in events if e.kind is EventKind.LINE]
        assert any(line.startswith("SUMMARY files=1 success=1 failed=0 status=completed") for line in lines)

    def test_worker_cancel(self, data_dir: Path, thermal_day_file: Path):
        worker = BatchWorker(data_dir, config=RunConfig())
        worker.cancel()
        worker.start()
        result = worker.wait(timeout=60)
        assert worker.cancel_requested
        assert result.status is RunStatus.CANCELLED

    def test_worker_reraises_invalid_path(self, temp_workdir: Path):
        worker = BatchWorker(temp_workdir / "absent").start()
        with pytest.raises(InvalidPath):
            worker.wait(timeout=60)
        assert worker.channel.drain()[-1].result is None

    def test_worker_reraises_unexpected_error(self, data_dir: Path):
        with patch("noise_tables.services.worker.process_all", side_effect=RuntimeError("boom")):
            worker = BatchWorker(data_dir).start()
            with pytest.raises(RuntimeError, match="boom"):
                worker.wait(timeout=60)
        last = worker.channel.drain()[-1]
        assert last.kind is EventKind.FINISHED
        assert last.result is None

    def test_worker_cannot_start_twice(self, data_dir: Path):
        worker = BatchWorker(data_dir).start()
        with pytest.raises(RuntimeError):
            worker.start()
        worker.wait(timeout=60)
