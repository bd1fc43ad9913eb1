from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

from ..errors import ProcessingError
from ..excel.cell_text import cell_text
from ..excel.grid import Sheet, Workbook, cm_to_width
from ..excel.reader import read_source_sheet
from ..excel.writer import write_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.aggregated_point import point_sort_key
from ..models.calculation_point import CalculationPoint
from ..models.columns import COORDINATES_COL, DESCRIPTION_COL, NAME_COL
from ..models.error_record import ErrorRecord
from ..models.file_category import FileCategory, MeasurementDomain
from ..models.labels import DEFAULT_LABELS, MarkerLabels
from .aggregator import ensure_output_folder
from .layout import BASE_STYLE, HEADER_STYLE, apply_table_borders
from .point_extractor import extract_elevation

"""Calculation point list: name, coordinates and description of every point."""

__all__ = [
    "POINT_LIST_FOLDER_SUFFIX",
    "SOURCE_PRIORITY",
    "select_source",
    "collect_points",
    "build_point_list_sheet",
    "point_list_output_path",
    "create_point_list",
]

logger = logging.getLogger(__name__)

POINT_LIST_FOLDER_SUFFIX = "_Calculation point list"
POINT_LIST_SHEET_NAME = "Point list"
SOURCE_PRIORITY = (
    MeasurementDomain.VENTILATION,
    MeasurementDomain.THERMAL,
    MeasurementDomain.POSITIONAL,
)

_LIST_HEADER_STYLE = replace(HEADER_STYLE, font_size=12, bold=True, wrap=True)
_LIST_DATA_STYLE = replace(BASE_STYLE, horizontal="left", wrap=True)
_COLUMN_CM = 6.0


def select_source(
    files: Iterable[Path], error_log: ErrorLogBuffer | None = None
) -> tuple[Path, Sheet] | None:
    """First readable file holding its source sheet, by domain priority.

    Returns:
        (path, source sheet), None when no candidate could be read
    """
    by_domain: dict[MeasurementDomain, list[tuple[Path, FileCategory]]] = {}
    for path in files:
        category = FileCategory.from_file_name(path.name)
        if category is not None:
            by_domain.setdefault(category.domain, []).append((path, category))

    for domain in SOURCE_PRIORITY:
        for path, category in sorted(by_domain.get(domain, []), key=lambda pc: pc[0].name):
            try:
                return path, read_source_sheet(path, category.source_sheet)
            except ProcessingError as e:
                logger.warning("point list: %s skipped: %s", path.name, e)
                if error_log is not None:
                    error_log.append(ErrorRecord.from_exception(path.name, category.source_sheet, e))
    return None


def collect_points(sheet: Sheet, labels: MarkerLabels = DEFAULT_LABELS) -> list[CalculationPoint]:
    """Unique points of a source sheet (first occurrence wins), in point order."""
    seen: dict[str, CalculationPoint] = {}
    for i, row in sheet.iter_rows(1):
        name = cell_text(row.get(NAME_COL)).strip()
        if not labels.is_point_name(name) or name in seen:
            continue
        coordinates = cell_text(row.get(COORDINATES_COL)).strip()
        seen[name] = CalculationPoint(
            name=name,
            description=cell_text(row.get(DESCRIPTION_COL)).strip(),
            coordinates=coordinates,
            elevation=extract_elevation(coordinates),
            row_index=i,
        )
    return sorted(seen.values(), key=lambda p: point_sort_key(p.name))


def build_point_list_sheet(workbook: Workbook, points: list[CalculationPoint]) -> Sheet:
    sheet = workbook.create_sheet(POINT_LIST_SHEET_NAME, default_row_height=20)
    for col in range(3):
        sheet.column_widths[col] = cm_to_width(_COLUMN_CM)
    header = sheet.ensure_row(0, 25)
    header.set(0, "Point name", _LIST_HEADER_STYLE)
    header.set(1, "Coordinates x:y:z", _LIST_HEADER_STYLE)
    header.set(2, "Description", _LIST_HEADER_STYLE)
    for i, point in enumerate(points, start=1):
        row = sheet.ensure_row(i)
        row.set(0, point.name, _LIST_DATA_STYLE)
        row.set(1, point.coordinates, _LIST_DATA_STYLE)
        row.set(2, point.description, _LIST_DATA_STYLE)
    apply_table_borders(sheet, columns=range(3), skip=-1)
    return sheet


def point_list_output_path(directory: Path) -> Path:
    folder = directory / f"{directory.name}{POINT_LIST_FOLDER_SUFFIX}"
    return folder / f"{folder.name}.xlsx"


def create_point_list(
    directory: Path,
    files: Iterable[Path],
    labels: MarkerLabels = DEFAULT_LABELS,
    error_log: ErrorLogBuffer | None = None,
) -> Path | None:
    """Write the point list for the best available source file.

    Returns:
        Written file path, None when no source file or no point was found

    Raises:
        IOFailure: If the output cannot be written
    """
    selected = select_source(files, error_log)
    if selected is None:
        logger.error("point list: no readable ventilation, thermal or positional file")
        return None
    path, sheet = selected
    logger.info("point list source: %s", path.name)

    points = collect_points(sheet, labels)
    if not points:
        logger.error("point list: no calculation points in %s", path.name)
        return None

    workbook = Workbook()
    build_point_list_sheet(workbook, points)
    output = point_list_output_path(directory)
    ensure_output_folder(output.parent)
    write_workbook(workbook, output)
    logger.info("point list written: %s (%d points)", output, len(points))
    return output
