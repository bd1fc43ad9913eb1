from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import patch

from noise_tables.cli.__main__ import EXIT_CANCELLED, EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL
from noise_tables.cli.__main__ import main as cli_main

"""Exit code and SUMMARY line contract."""

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+) success=(\d+) failed=(\d+) status=(completed|partial|cancelled) elapsed_sec=\S+$",
    re.MULTILINE,
)


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_CANCELLED) == (0, 1, 2, 3)


def test_no_source_directory_is_fatal(temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert "ERROR no source directory" in out


def test_missing_directory_is_fatal(temp_workdir: Path, capsys):
    code = cli_main([str(temp_workdir / "absent")])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert "ERROR processing: Directory not found" in out
    assert SUMMARY_RE.search(out) is None


def test_unexpected_worker_error_is_fatal(temp_workdir: Path, capsys):
    with patch("noise_tables.services.worker.process_all", side_effect=RuntimeError("boom")):
        code = cli_main(["data"])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert "ERROR unexpected error: boom" in out


def test_explicit_missing_config_is_fatal(temp_workdir: Path, capsys):
    code = cli_main(["data", "--config", "config/absent.yml"])
    assert code == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_invalid_config_is_fatal(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "run.yml").write_text("outputs:\n  summary_shape: grid\n", encoding="utf-8")
    code = cli_main([])
    assert code == EXIT_FATAL
    assert "config validation failed" in capsys.readouterr().out


def test_all_success(temp_workdir: Path, thermal_day_file: Path, capsys):
    code = cli_main(["data", "--remove-required-isolation", "--move-barrier-isolation"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    m = SUMMARY_RE.search(out)
    assert m is not None and m.groups()[:4] == ("1", "1", "0", "completed")
    assert len(SUMMARY_RE.findall(out)) == 1
    assert thermal_day_file.with_name("Project_Memo_SPL_RP_TH_day_FINAL.xlsx").exists()


def test_partial_failure(temp_workdir: Path, thermal_day_file: Path, broken_file: Path, capsys):
    code = cli_main(["data"])
    out = capsys.readouterr().out
    assert code == EXIT_PARTIAL_FAILURE
    assert SUMMARY_RE.search(out).groups()[:4] == ("2", "1", "1", "partial")
    assert list((temp_workdir / "logs").glob("errors-*.log"))


def test_config_file_and_environment(temp_workdir: Path, thermal_day_file: Path, ventilation_night_file: Path,
                                     monkeypatch, capsys):
    (temp_workdir / "config" / "run.yml").write_text(
        "source_directory: ./elsewhere\n"
        "outputs:\n  point_list: true\n"
        "categories: [ventilation_night]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("NOISE_TABLES_SOURCE_DIR", "data")

    code = cli_main([])

    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert SUMMARY_RE.search(out).groups()[:2] == ("1", "1")
    assert (temp_workdir / "data" / "data_Calculation point list").is_dir()
    assert not thermal_day_file.with_name("Project_Memo_SPL_RP_TH_day_FINAL.xlsx").exists()


def test_command_line_category_filter(temp_workdir: Path, thermal_day_file: Path, ventilation_night_file: Path,
                                      capsys):
    code = cli_main(["data", "--category", "thermal_day", "--summary-table", "--summary-shape", "block"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert SUMMARY_RE.search(out).groups()[:2] == ("1", "1")
    folder = temp_workdir / "data" / "data_Summary table of SPL at calculation points, dBA"
    assert (folder / f"{folder.name}.xlsx").exists()
