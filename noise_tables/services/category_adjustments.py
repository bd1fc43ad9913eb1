from __future__ import annotations

import logging
from collections.abc import Callable

from ..excel.cell_text import cell_text
from ..excel.grid import Sheet
from ..models.columns import HEADER_ROWS, MARKER_COL
from ..models.file_category import FileCategory, MeasurementDomain
from ..models.labels import MarkerLabels
from .row_matcher import find_rows

"""Per-domain adjustments applied after annotation and before row operations."""

__all__ = [
    "ADJUSTMENTS",
    "apply_category_adjustment",
    "append_limit_correction_suffix",
]

logger = logging.getLogger(__name__)

Adjustment = Callable[[Sheet, MarkerLabels], int]


def append_limit_correction_suffix(sheet: Sheet, labels: MarkerLabels) -> int:
    """Append the -5 dB correction note to every limit value marker and wrap it."""
    rows = find_rows(sheet, MARKER_COL, labels.limit, HEADER_ROWS)
    for i in rows:
        cell = sheet.cell(i, MARKER_COL)
        cell.value = f"{cell_text(cell).strip()}{labels.limit_correction_suffix}"
        cell.style = cell.style.with_wrap()
    logger.info("limit value labels adjusted: %d", len(rows))
    return len(rows)


def _no_adjustment(sheet: Sheet, labels: MarkerLabels) -> int:
    return 0


ADJUSTMENTS: dict[MeasurementDomain, Adjustment] = {
    MeasurementDomain.VENTILATION: append_limit_correction_suffix,
    MeasurementDomain.THERMAL: _no_adjustment,
    MeasurementDomain.POSITIONAL: _no_adjustment,
}


def apply_category_adjustment(sheet: Sheet, category: FileCategory, labels: MarkerLabels) -> int:
    return ADJUSTMENTS[category.domain](sheet, labels)
