from __future__ import annotations

import logging
import re

from ..errors import MalformedElevation, ProcessingError
from ..excel.cell_text import cell_text
from ..excel.grid import Sheet
from ..excel.mutator import insert_row
from ..models.calculation_point import CalculationPoint
from ..models.columns import COORDINATES_COL, DESCRIPTION_COL, HEADER_ROWS, LMAX_COL, MARKER_COL, NAME_COL
from ..models.labels import DEFAULT_LABELS, MarkerLabels
from .layout import ANNOTATION_STYLE

"""Calculation point discovery and annotation rows.

A point row has a point name in column A and one of the level labels in
column B. Each point gets one annotation row right after its first data row:
name, description and elevation merged over B..M in a highlighted bold style.
"""

__all__ = [
    "parse_elevation",
    "extract_elevation",
    "build_header_text",
    "find_points",
    "annotate_points",
]

logger = logging.getLogger(__name__)

# third colon-delimited field up to the first comma: "x:y:z, ..." -> "z"
_ELEVATION_FIELD_RE = re.compile(r":[^:]*:([^,]*)")
_NUMBER_RE = re.compile(r"-?\d+\.?\d*")


def parse_elevation(coordinates: str) -> float:
    """Return the elevation (z) of an ``x:y:z`` coordinate string.

    Raises:
        MalformedElevation: If there is no third field or it holds no number
    """
    field = _ELEVATION_FIELD_RE.search(coordinates)
    if field is None:
        raise MalformedElevation(f"no elevation field in coordinates '{coordinates}'")
    number = _NUMBER_RE.search(field.group(1).strip())
    if number is None:
        raise MalformedElevation(f"no number in elevation field of '{coordinates}'")
    return float(number.group(0))


def extract_elevation(coordinates: str) -> float | None:
    if not coordinates:
        return None
    try:
        return parse_elevation(coordinates)
    except MalformedElevation as e:
        logger.debug("elevation left empty: %s", e)
        return None


def build_header_text(point: CalculationPoint) -> str:
    """``name[ description][, elevation +z.zzz]``."""
    text = point.name
    if point.description:
        text += f" {point.description}"
    if point.elevation is not None:
        text += f", elevation {point.elevation:+.3f}"
    return text


def find_points(
    sheet: Sheet, labels: MarkerLabels = DEFAULT_LABELS, start: int = HEADER_ROWS
) -> list[CalculationPoint]:
    """Return the calculation points of ``sheet`` in row order."""
    level_labels = set(labels.level)
    points = []
    for i, row in sheet.iter_rows(start):
        name = cell_text(row.get(NAME_COL)).strip()
        marker = cell_text(row.get(MARKER_COL)).strip()
        if not labels.is_point_name(name) or marker not in level_labels:
            continue
        coordinates = cell_text(row.get(COORDINATES_COL)).strip()
        points.append(CalculationPoint(
            name=name,
            description=cell_text(row.get(DESCRIPTION_COL)).strip(),
            coordinates=coordinates,
            elevation=extract_elevation(coordinates),
            row_index=i,
        ))
    return points


def annotate_points(sheet: Sheet, points: list[CalculationPoint]) -> int:
    """Insert one annotation row after the first data row of each point.

    Points are handled from the highest row index down so earlier insertions
    never move rows of points still waiting. A failing point is logged and
    skipped.

    Returns:
        Number of annotation rows inserted
    """
    inserted = 0
    for point in sorted(points, key=lambda p: p.row_index, reverse=True):
        at = point.row_index + 1
        try:
            row = insert_row(sheet, at)
            row.set(MARKER_COL, build_header_text(point), ANNOTATION_STYLE)
            sheet.merge(at, at, MARKER_COL, LMAX_COL)
        except (ProcessingError, ValueError) as e:
            logger.error("annotation for %s skipped: %s", point.name, e)
            continue
        inserted += 1
    logger.info("annotated %d calculation points", inserted)
    return inserted
