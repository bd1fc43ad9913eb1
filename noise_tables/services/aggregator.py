from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import IOFailure, ProcessingError
from ..excel.cell_text import cell_text, numeric_value
from ..excel.grid import Sheet, Workbook
from ..excel.reader import read_source_sheet
from ..excel.writer import write_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.aggregated_point import (
    AggregatedPointRecord,
    MeasurementKind,
    PointObservation,
    point_sort_key,
)
from ..models.columns import COORDINATES_COL, LEQ_COL, MARKER_COL, NAME_COL
from ..models.config_models import SummaryShape
from ..models.error_record import ErrorRecord
from ..models.file_category import FileCategory, Period
from ..models.labels import DEFAULT_LABELS, MarkerLabels
from .layout import BASE_STYLE, HEADER_STYLE, HEADER_TITLES, apply_table_borders
from .point_extractor import extract_elevation

"""Cross-file summary table of sound pressure levels at calculation points.

Both output shapes share one extraction primitive (``extract_observations``)
that walks a source sheet group by group and classifies every value row by
the level / limit / excess marker substrings of its label.

- pivot: one row per point, one column per file category present
- block: three rows (level, limit, excess) per source file ordered by the
  numeric code in its file name, one column per point
"""

__all__ = [
    "SUMMARY_FOLDER_SUFFIX",
    "CODE_PATTERN",
    "classify_marker",
    "extract_observations",
    "collect_observations",
    "build_pivot_records",
    "build_pivot_sheet",
    "build_block_sheet",
    "file_code",
    "ensure_output_folder",
    "summary_output_path",
    "create_summary_table",
]

logger = logging.getLogger(__name__)

SUMMARY_FOLDER_SUFFIX = "_Summary table of SPL at calculation points, dBA"
SUMMARY_SHEET_NAME = "Summary SPL"
CODE_PATTERN = re.compile(r"code[ _-]?(\d+)", re.IGNORECASE)
NO_VALUE = "-"


@dataclass
class FileObservations:
    """Observations of one readable source file."""
    path: Path
    category: FileCategory
    observations: list[PointObservation] = field(default_factory=list)

    @property
    def group_starts(self) -> set[str]:
        return {o.point for o in self.observations if o.group_start}


def classify_marker(text: str, labels: MarkerLabels = DEFAULT_LABELS) -> MeasurementKind | None:
    lowered = text.lower()
    if labels.level_marker.lower() in lowered:
        return MeasurementKind.LEVEL
    if labels.limit_marker.lower() in lowered:
        return MeasurementKind.LIMIT
    if labels.excess_marker.lower() in lowered:
        return MeasurementKind.EXCESS
    return None


def extract_observations(sheet: Sheet, labels: MarkerLabels = DEFAULT_LABELS) -> list[PointObservation]:
    """Walk the source sheet from row 1 and classify every value row of every point group.

    A row naming a point in column A starts (or continues) that point's group;
    rows with a blank column A belong to the current group; any other text in
    column A closes it.
    """
    observations = []
    current: str | None = None
    for _, row in sheet.iter_rows(1):
        name = cell_text(row.get(NAME_COL)).strip()
        named = False
        if name:
            if labels.is_point_name(name):
                current = name
                named = True
            else:
                current = None
        if current is None:
            continue
        kind = classify_marker(cell_text(row.get(MARKER_COL)).strip(), labels)
        if kind is None:
            continue
        group_start = named and kind is MeasurementKind.LEVEL
        elevation = (
            extract_elevation(cell_text(row.get(COORDINATES_COL)).strip()) if named else None
        )
        observations.append(PointObservation(
            point=current,
            kind=kind,
            value=numeric_value(row.get(LEQ_COL)),
            elevation=elevation,
            group_start=group_start,
        ))
    return observations


def collect_observations(
    files: Iterable[Path],
    labels: MarkerLabels = DEFAULT_LABELS,
    error_log: ErrorLogBuffer | None = None,
) -> list[FileObservations]:
    """Read every supported file; unreadable files are skipped with a warning."""
    collected = []
    for path in files:
        category = FileCategory.from_file_name(path.name)
        if category is None:
            logger.debug("summary: %s is not a source file", path.name)
            continue
        try:
            sheet = read_source_sheet(path, category.source_sheet)
        except ProcessingError as e:
            logger.warning("summary: %s skipped: %s", path.name, e)
            if error_log is not None:
                error_log.append(ErrorRecord.from_exception(path.name, category.source_sheet, e))
            continue
        collected.append(FileObservations(path, category, extract_observations(sheet, labels)))
    return collected


def build_pivot_records(collected: list[FileObservations]) -> list[AggregatedPointRecord]:
    records: dict[str, AggregatedPointRecord] = {}
    for fo in collected:
        for o in fo.observations:
            record = records.setdefault(o.point, AggregatedPointRecord(o.point))
            if record.elevation is None and o.elevation is not None:
                record.elevation = o.elevation
            record.add(fo.category, o.kind, o.value)
    return sorted(records.values(), key=lambda r: point_sort_key(r.name))


def _write_header_cell(sheet: Sheet, row: int, col: int, text: str) -> None:
    sheet.set_value(row, col, text, HEADER_STYLE.with_wrap())


def build_pivot_sheet(workbook: Workbook, records: list[AggregatedPointRecord]) -> Sheet:
    """Pivot shape: point, elevation, then one Leq column per category (enum order)."""
    present = set().union(*(r.categories() for r in records)) if records else set()
    categories = [c for c in FileCategory if c in present]

    sheet = workbook.create_sheet(SUMMARY_SHEET_NAME, default_row_height=20)
    sheet.column_widths.update({0: 13.5, 1: 13.5})
    _write_header_cell(sheet, 0, 0, "Calculation point")
    _write_header_cell(sheet, 0, 1, "Elevation, m")
    sheet.merge(0, 1, 0, 0)
    sheet.merge(0, 1, 1, 1)
    for offset, category in enumerate(categories):
        col = 2 + offset
        sheet.column_widths[col] = 6.75
        _write_header_cell(sheet, 0, col, category.display_label)
        _write_header_cell(sheet, 1, col, HEADER_TITLES["leq"])

    for i, record in enumerate(records):
        row = sheet.ensure_row(2 + i)
        row.set(0, record.name, BASE_STYLE)
        row.set(1, record.elevation if record.elevation is not None else NO_VALUE, BASE_STYLE)
        for offset, category in enumerate(categories):
            value = record.preferred_value(category)
            row.set(2 + offset, value if value is not None else NO_VALUE, BASE_STYLE)

    apply_table_borders(sheet, columns=range(2 + len(categories)), skip=-1)
    return sheet


def file_code(path: Path) -> int:
    """Numeric code after the ``Code`` prefix in the file name, 1 when absent."""
    m = CODE_PATTERN.search(path.stem)
    return int(m.group(1)) if m else 1


def _block_row_labels(period: Period, labels: MarkerLabels) -> dict[MeasurementKind, str]:
    level_index = 0 if period is Period.DAY else min(1, len(labels.level) - 1)
    return {
        MeasurementKind.LEVEL: labels.level[level_index],
        MeasurementKind.LIMIT: labels.limit[0],
        MeasurementKind.EXCESS: labels.excess[0],
    }


def build_block_sheet(
    workbook: Workbook, collected: list[FileObservations], labels: MarkerLabels = DEFAULT_LABELS
) -> Sheet:
    """Block shape: per file three rows (level, limit, excess), one column per point.

    A point gets values in a file's block only when that file holds a group
    start row (name + level label) for it.
    """
    ordered = sorted(collected, key=lambda fo: (file_code(fo.path), fo.path.name))
    points = sorted(
        {o.point for fo in ordered for o in fo.observations}, key=point_sort_key
    )

    sheet = workbook.create_sheet(SUMMARY_SHEET_NAME, default_row_height=20)
    sheet.column_widths.update({0: 13.5, 1: 13.5})
    _write_header_cell(sheet, 0, 0, "Code, period")
    _write_header_cell(sheet, 0, 1, "Value")
    for offset, point in enumerate(points):
        sheet.column_widths[2 + offset] = 6.75
        _write_header_cell(sheet, 0, 2 + offset, point)

    kinds = (MeasurementKind.LEVEL, MeasurementKind.LIMIT, MeasurementKind.EXCESS)
    row_index = 1
    for fo in ordered:
        started = fo.group_starts
        values: dict[tuple[str, MeasurementKind], float] = {}
        for o in fo.observations:
            if o.point in started and o.value is not None:
                values[(o.point, o.kind)] = o.value
        row_labels = _block_row_labels(fo.category.period, labels)
        sheet.set_value(
            row_index, 0, f"Code {file_code(fo.path)}, {fo.category.period.value}", BASE_STYLE.with_wrap()
        )
        sheet.merge(row_index, row_index + len(kinds) - 1, 0, 0)
        for k, kind in enumerate(kinds):
            row = sheet.ensure_row(row_index + k)
            row.set(1, row_labels[kind], BASE_STYLE)
            for offset, point in enumerate(points):
                value = values.get((point, kind))
                row.set(2 + offset, value if value is not None else NO_VALUE, BASE_STYLE)
        row_index += len(kinds)

    apply_table_borders(sheet, columns=range(2 + len(points)), skip=-1)
    return sheet


def ensure_output_folder(folder: Path) -> None:
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailure(f"cannot create folder {folder}: {e}") from e


def summary_output_path(directory: Path) -> Path:
    folder = directory / f"{directory.name}{SUMMARY_FOLDER_SUFFIX}"
    return folder / f"{folder.name}.xlsx"


def create_summary_table(
    directory: Path,
    files: Iterable[Path],
    shape: SummaryShape = SummaryShape.PIVOT,
    labels: MarkerLabels = DEFAULT_LABELS,
    error_log: ErrorLogBuffer | None = None,
) -> Path | None:
    """Build and write the summary table for ``files``.

    Returns:
        Written file path, None when no readable source file or no point was found
        (nothing is written in that case)

    Raises:
        IOFailure: If the output cannot be written
    """
    collected = collect_observations(files, labels, error_log)
    if not collected:
        logger.error("summary table: no readable source files")
        return None
    if not any(fo.observations for fo in collected):
        logger.error("summary table: no calculation points found")
        return None

    workbook = Workbook()
    if shape is SummaryShape.BLOCK:
        build_block_sheet(workbook, collected, labels)
    else:
        records = build_pivot_records(collected)
        build_pivot_sheet(workbook, records)

    output = summary_output_path(directory)
    ensure_output_folder(output.parent)
    write_workbook(workbook, output)
    logger.info("summary table written: %s (%d files)", output, len(collected))
    return output
