from __future__ import annotations

import logging
from dataclasses import replace

from ..excel.cell_text import cell_text
from ..excel.grid import STANDARD_ROW_HEIGHT, CellStyle, Sheet, cm_to_width
from ..excel.mutator import copy_row
from ..models.columns import (
    FREQUENCY_BANDS,
    HEADER_ROWS,
    HIDDEN_BAND_COL,
    HIDDEN_BAND_LABEL,
    LEQ_COL,
    LMAX_COL,
    MARKER_COL,
    TABLE_COLUMNS,
)

"""Output sheet layout and styling.

Every function here is deterministic given its input sheet: fixed widths and
heights, the two-row table header, the blank separator row, the compact data
copy, the hidden 31.5 Hz column and the final border pass.
"""

__all__ = [
    "BASE_STYLE",
    "BORDERED_STYLE",
    "HEADER_STYLE",
    "ANNOTATION_STYLE",
    "HEADER_TITLES",
    "setup_sheet_layout",
    "create_table_header",
    "create_separator_row",
    "copy_source_data",
    "hide_band_column",
    "apply_table_borders",
]

logger = logging.getLogger(__name__)

BASE_STYLE = CellStyle(font_name="Arial Narrow", font_size=10, horizontal="center", vertical="center")
BORDERED_STYLE = BASE_STYLE.with_borders()
HEADER_STYLE = replace(BASE_STYLE, fill="D9D9D9")
ANNOTATION_STYLE = replace(BASE_STYLE, font_size=11, bold=True, fill="FFF2CC", borders=True)

HEADER_TITLES = {
    "name": "Name",
    "bands": "Sound pressure levels, dB, in octave bands, Hz",
    "leq": "Leq, dBA",
    "lmax": "Lmax, dBA",
}

_FIRST_COL_CM = 1.5
_MARKER_COL_CM = 3.0
_OTHER_COL_CM = 1.5
_LAST_SIZED_COL = 13  # N


def setup_sheet_layout(sheet: Sheet) -> None:
    """Default row height 8 mm; widths A 1.5 cm, B 3 cm, C..N 1.5 cm."""
    sheet.default_row_height = STANDARD_ROW_HEIGHT
    sheet.column_widths[0] = cm_to_width(_FIRST_COL_CM)
    sheet.column_widths[MARKER_COL] = cm_to_width(_MARKER_COL_CM)
    for col in range(2, _LAST_SIZED_COL + 1):
        sheet.column_widths[col] = cm_to_width(_OTHER_COL_CM)


def create_table_header(sheet: Sheet) -> None:
    """Write header rows 1-2 and their merged regions.

    Row 1: ``Name`` (B), band group title (C..K merged), ``Leq`` (L1:L2), ``Lmax`` (M1:M2).
    Row 2: the nine band labels in C..K. B1:B2 is merged as well.
    """
    top = sheet.ensure_row(0, STANDARD_ROW_HEIGHT)
    bands = sheet.ensure_row(1, STANDARD_ROW_HEIGHT)

    top.set(MARKER_COL, HEADER_TITLES["name"], HEADER_STYLE)
    top.set(HIDDEN_BAND_COL, HEADER_TITLES["bands"], HEADER_STYLE)
    top.set(LEQ_COL, HEADER_TITLES["leq"], HEADER_STYLE)
    top.set(LMAX_COL, HEADER_TITLES["lmax"], HEADER_STYLE)
    for offset, label in enumerate(FREQUENCY_BANDS):
        bands.set(HIDDEN_BAND_COL + offset, label, HEADER_STYLE)

    last_band_col = HIDDEN_BAND_COL + len(FREQUENCY_BANDS) - 1
    sheet.merge(0, 0, HIDDEN_BAND_COL, last_band_col)
    sheet.merge(0, 1, MARKER_COL, MARKER_COL)
    sheet.merge(0, 1, LEQ_COL, LEQ_COL)
    sheet.merge(0, 1, LMAX_COL, LMAX_COL)


def create_separator_row(sheet: Sheet) -> None:
    sheet.ensure_row(HEADER_ROWS - 1, STANDARD_ROW_HEIGHT)


def copy_source_data(source: Sheet, target: Sheet, start_row: int = HEADER_ROWS) -> int:
    """Copy source rows from index 1 onward compactly into ``target`` from ``start_row``.

    Gaps in the source are skipped. Copied cells get the base style and every
    copied row the standard height.

    Returns:
        Number of rows copied
    """
    copied = 0
    for _, src_row in source.iter_rows(1):
        dst_row = target.ensure_row(start_row + copied)
        copy_row(src_row, dst_row)
        for cell in dst_row.cells.values():
            cell.style = BASE_STYLE
        dst_row.height = STANDARD_ROW_HEIGHT
        copied += 1
    logger.info("copied %d data rows", copied)
    return copied


def hide_band_column(sheet: Sheet, label: str = HIDDEN_BAND_LABEL) -> int | None:
    """Hide the column whose header row 2 cell reads ``label``.

    Returns:
        Hidden column index, None when the label is not in the header (logged)
    """
    header = sheet.row(1)
    if header is not None:
        for col, cell in header.items():
            if cell_text(cell).strip() == label:
                sheet.hide_column(col)
                return col
    logger.warning("band column '%s' not found in header of sheet '%s'", label, sheet.name)
    return None


def apply_table_borders(sheet: Sheet, columns: range = TABLE_COLUMNS, skip: int = HIDDEN_BAND_COL) -> int:
    """Give every present row thin borders on columns A..M except ``skip``.

    Missing cells are created blank with the bordered base style; existing
    cells keep their font, fill and alignment.

    Returns:
        Number of cells styled
    """
    styled = 0
    for _, row in sheet.iter_rows():
        for col in columns:
            if col == skip:
                continue
            cell = row.get(col)
            if cell is None:
                row.set(col, None, BORDERED_STYLE)
            else:
                cell.style = cell.style.with_borders()
            styled += 1
    logger.info("applied thin borders to %d cells", styled)
    return styled
