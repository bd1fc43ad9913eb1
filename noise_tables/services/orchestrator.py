from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from threading import Event

from ..errors import BatchCancelled, InvalidPath, IOFailure, ProcessingError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import SUMMARY_LEVEL
from ..models.config_models import RunConfig
from ..models.error_record import ErrorRecord
from ..models.excel_file import ExcelFile, FileStatus
from ..models.file_category import FileCategory
from ..models.processing_result import BatchResult, FileStat, RunStatus
from .aggregator import create_summary_table
from .pipeline import process_file
from .point_list import create_point_list
from .progress import ProgressChannel, ProgressTracker
from .summary import render_summary_line

"""Batch runner.

Processes the selected source files strictly one after another, then builds
the optional point list and summary table. Per-file errors are logged,
recorded in the error log and counted; only an invalid input directory aborts
the run. Cancellation is checked at every file boundary (and per row inside
the row operations); on cancellation the current file is discarded and the
run ends with status ``cancelled``.

Progress: 0 at start, 10 after discovery, 10 + 80 * done / total per file,
90 before the point list, 95 before the summary table, 100 at the end.
"""

__all__ = [
    "validate_directory",
    "scan_source_files",
    "select_files",
    "process_all",
]

logger = logging.getLogger(__name__)

PROGRESS_DISCOVERED = 10.0
PROGRESS_FILES_SPAN = 80.0
PROGRESS_POINT_LIST = 90.0
PROGRESS_SUMMARY = 95.0
PROGRESS_DONE = 100.0


def validate_directory(directory: Path) -> Path:
    """Raises InvalidPath when ``directory`` is missing or not a directory."""
    if not directory.exists():
        raise InvalidPath(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise InvalidPath(f"Path is not a directory: {directory}")
    return directory


def scan_source_files(directory: Path) -> list[Path]:
    """Supported source files of ``directory`` (non-recursive), sorted by name.

    Raises:
        InvalidPath: If directory doesn't exist or can't be read
    """
    validate_directory(directory)
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_file() and FileCategory.is_supported_file(p)),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise InvalidPath(f"Error reading directory {directory}: {e}") from e


def select_files(files: Iterable[Path], config: RunConfig) -> list[Path]:
    """Drop files whose category is not selected; unsupported names are kept (they fail later)."""
    selected = []
    for path in files:
        category = FileCategory.from_file_name(path.name)
        if category is not None and not config.is_selected(category):
            logger.debug("%s ignored: category %s not selected", path.name, category.key)
            continue
        selected.append(path)
    return selected


def _report(progress: ProgressChannel | None, percent: float) -> None:
    if progress is not None:
        progress.percent(percent)


def _process_single_file(
    file_path: Path,
    config: RunConfig,
    cancel: Event | None,
    error_log: ErrorLogBuffer,
) -> ExcelFile:
    """Run the pipeline for one file and turn its outcome into an ExcelFile."""
    start_time = datetime.now(UTC)
    category = FileCategory.from_file_name(file_path.name)
    sheet_name = category.source_sheet if category is not None else ""
    try:
        return process_file(file_path, config, cancel)
    except BatchCancelled:
        logger.warning("%s: cancelled, output discarded", file_path.name)
        return ExcelFile(
            path=file_path,
            name=file_path.name,
            category=category,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.CANCELLED,
            error="cancelled",
        )
    except ProcessingError as e:
        logger.error("%s: %s", file_path.name, e)
        error_log.append(ErrorRecord.from_exception(file_path.name, sheet_name, e))
        error = str(e)
    except Exception as e:
        logger.exception("%s: unexpected error", file_path.name)
        error_log.append(ErrorRecord.from_exception(file_path.name, sheet_name, e))
        error = f"unexpected error: {e}"
    return ExcelFile(
        path=file_path,
        name=file_path.name,
        category=category,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED,
        error=error,
    )


def process_all(
    directory: Path,
    files: Iterable[Path] | None = None,
    config: RunConfig | None = None,
    progress: ProgressChannel | None = None,
    cancel: Event | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Process every selected source file, then the configured aggregate outputs.

    Args:
        directory: Source directory; aggregate output folders are created inside it
        files: Caller supplied file list (None = scan ``directory``)
        config: Run configuration (defaults: no row operations, no aggregates)
        progress: Optional channel receiving percent updates
        cancel: Optional cooperative cancellation flag
        error_log: Buffer for skipped-file records (flushed once at the end)

    Returns:
        BatchResult with counts, per-file stats, aggregate outputs and status

    Raises:
        InvalidPath: If ``directory`` is missing or not a directory (nothing is touched)
    """
    config = config or RunConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    start_time = datetime.now(UTC)
    _report(progress, 0)

    validate_directory(directory)
    file_paths = select_files(scan_source_files(directory) if files is None else files, config)
    logger.info("Processing %d files from: %s", len(file_paths), directory)
    _report(progress, PROGRESS_DISCOVERED)

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    cancelled = False

    with ProgressTracker(len(file_paths), description="Processing files") as tracker:
        for done, file_path in enumerate(file_paths, start=1):
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
            tracker.start_file(file_path)
            result = _process_single_file(file_path, config, cancel, error_log)
            elapsed = (
                (result.end_time - result.start_time).total_seconds()
                if result.end_time and result.start_time else 0.0
            )
            file_stats.append(FileStat(
                file_name=file_path.name,
                status=result.status.value,
                points=result.points,
                rows_affected=result.rows_affected,
                elapsed_seconds=elapsed,
                output_name=result.output_path.name if result.output_path else None,
                error=result.error,
            ))
            if result.status is FileStatus.CANCELLED:
                cancelled = True
                tracker.finish_file(success=False)
                break
            if result.status is FileStatus.SUCCESS:
                success_count += 1
            else:
                failed_count += 1
            tracker.set_postfix(success=success_count, failed=failed_count)
            tracker.finish_file(success=result.status is FileStatus.SUCCESS)
            _report(progress, PROGRESS_DISCOVERED + PROGRESS_FILES_SPAN * done / len(file_paths))

    point_list_path: Path | None = None
    summary_table_path: Path | None = None
    aggregate_failures: list[str] = []
    sources = [p for p in file_paths if FileCategory.from_file_name(p.name) is not None]

    if not cancelled and config.outputs.point_list:
        if cancel is not None and cancel.is_set():
            cancelled = True
        else:
            _report(progress, PROGRESS_POINT_LIST)
            try:
                point_list_path = create_point_list(directory, sources, config.labels, error_log)
            except IOFailure as e:
                logger.error("point list: %s", e)
            if point_list_path is None:
                aggregate_failures.append("point_list")

    if not cancelled and config.outputs.summary_table:
        if cancel is not None and cancel.is_set():
            cancelled = True
        else:
            _report(progress, PROGRESS_SUMMARY)
            try:
                summary_table_path = create_summary_table(
                    directory, sources, config.outputs.summary_shape, config.labels, error_log
                )
            except IOFailure as e:
                logger.error("summary table: %s", e)
            if summary_table_path is None:
                aggregate_failures.append("summary_table")

    try:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info("error log written: %s", log_path)
    except OSError as e:
        logger.warning("error log could not be written: %s", e)

    if cancelled:
        status = RunStatus.CANCELLED
    else:
        status = RunStatus.PARTIAL if failed_count or aggregate_failures else RunStatus.COMPLETED
        _report(progress, PROGRESS_DONE)

    end_time = datetime.now(UTC)
    result = BatchResult(
        success_files=success_count,
        failed_files=failed_count,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        status=status,
        file_stats=file_stats,
        point_list_path=point_list_path,
        summary_table_path=summary_table_path,
        aggregate_failures=aggregate_failures,
    )
    summary_line = render_summary_line(result)
    logger.log(SUMMARY_LEVEL, summary_line[len("SUMMARY "):])
    return result
