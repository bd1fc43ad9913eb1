from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from threading import Event

from ..excel.grid import Sheet, Workbook
from ..excel.reader import read_source_sheet
from ..excel.writer import write_workbook
from ..models.config_models import RunConfig
from ..models.excel_file import ExcelFile, FileStatus
from ..models.file_category import FileCategory
from .category_adjustments import apply_category_adjustment
from .layout import (
    apply_table_borders,
    copy_source_data,
    create_separator_row,
    create_table_header,
    hide_band_column,
    setup_sheet_layout,
)
from .point_extractor import annotate_points, find_points
from .row_operations import (
    BarrierRowRelocator,
    CorrectionApplier,
    EmptyRowCleaner,
    RequiredIsolationRemover,
    RowOperation,
    check_cancelled,
)

"""Single-file pipeline.

ResolveCategory -> OpenSource -> BuildOutputSheet -> CopyData -> AnnotatePoints
-> CategorySpecificAdjustment -> ConfiguredRowOperations -> HideColumn
-> RemoveEmptyRows -> ApplyBorders -> Write

Any ProcessingError raised here aborts this file only. Nothing is written
unless every step before Write succeeded.
"""

__all__ = [
    "OUTPUT_SHEET_NAME",
    "build_row_operations",
    "build_output_sheet",
    "process_file",
]

logger = logging.getLogger(__name__)

OUTPUT_SHEET_NAME = "Data"


def build_row_operations(config: RunConfig) -> list[RowOperation]:
    """Configured row operations in their fixed order: remove, relocate, correct."""
    ops: list[RowOperation] = []
    labels = config.labels
    if config.operations.remove_required_isolation:
        ops.append(RequiredIsolationRemover(labels))
    if config.operations.move_barrier_isolation:
        ops.append(BarrierRowRelocator(labels, offset=config.barrier_offset))
    if config.operations.apply_correction:
        ops.append(CorrectionApplier(config.operations.correction_value, labels))
    return ops


def build_output_sheet(workbook: Workbook, source: Sheet) -> Sheet:
    """Laid-out output sheet with header, separator and the copied source data."""
    sheet = workbook.create_sheet(OUTPUT_SHEET_NAME)
    setup_sheet_layout(sheet)
    create_table_header(sheet)
    create_separator_row(sheet)
    copy_source_data(source, sheet)
    return sheet


def process_file(path: Path, config: RunConfig, cancel: Event | None = None) -> ExcelFile:
    """Run the whole pipeline for one source workbook.

    Args:
        path: Source file
        config: Run configuration (operations and labels)
        cancel: Optional cooperative cancellation flag

    Returns:
        ExcelFile with status SUCCESS and the written output path

    Raises:
        UnsupportedFile: File name matches no category
        MissingSheet: Source sheet absent
        IOFailure: Read or write failure
        BatchCancelled: ``cancel`` was set; no output is written
    """
    start_time = datetime.now(UTC)
    category = FileCategory.resolve(path)
    logger.info("processing %s (%s)", path.name, category.display_label)

    source = read_source_sheet(path, category.source_sheet)

    workbook = Workbook()
    sheet = build_output_sheet(workbook, source)

    points = find_points(sheet, config.labels)
    annotated = annotate_points(sheet, points)

    apply_category_adjustment(sheet, category, config.labels)

    affected = 0
    for op in build_row_operations(config):
        affected += op.execute(sheet, cancel)

    hide_band_column(sheet)
    EmptyRowCleaner(config.labels).execute(sheet, cancel)
    apply_table_borders(sheet)

    check_cancelled(cancel)
    output_path = path.with_name(category.output_name(path.name))
    write_workbook(workbook, output_path)
    logger.info("written %s", output_path.name)

    return ExcelFile(
        path=path,
        name=path.name,
        category=category,
        output_path=output_path,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.SUCCESS,
        points=annotated,
        rows_affected=affected,
    )
