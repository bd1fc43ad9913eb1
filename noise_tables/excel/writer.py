from __future__ import annotations

import logging
import os
from pathlib import Path

from openpyxl import Workbook as XlsxWorkbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..errors import IOFailure
from .grid import CellStyle, Formula, Sheet, Workbook

"""Serialize the grid model to .xlsx with openpyxl.

Rows and columns are 0-based in the grid and 1-based in openpyxl. Cells are
written before merges are applied because openpyxl turns the non-anchor cells
of a merged range into read-only placeholders.
"""

__all__ = [
    "write_workbook",
    "temp_path_for",
]

logger = logging.getLogger(__name__)

_THIN = Side(style="thin")
_THIN_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


class _StyleCache:
    """Maps immutable CellStyle values to shared openpyxl style objects."""

    def __init__(self) -> None:
        self._cache: dict[CellStyle, tuple[Font, Alignment, PatternFill | None, Border | None]] = {}

    def get(self, style: CellStyle) -> tuple[Font, Alignment, PatternFill | None, Border | None]:
        hit = self._cache.get(style)
        if hit is None:
            font = Font(name=style.font_name, size=style.font_size, bold=style.bold)
            alignment = Alignment(
                horizontal=style.horizontal, vertical=style.vertical, wrap_text=style.wrap
            )
            fill = PatternFill("solid", fgColor=style.fill) if style.fill else None
            border = _THIN_BORDER if style.borders else None
            hit = (font, alignment, fill, border)
            self._cache[style] = hit
        return hit


def _xlsx_value(value: object) -> object:
    if isinstance(value, Formula):
        text = value.text
        return text if text.startswith("=") else f"={text}"
    return value


def _write_sheet(ws, sheet: Sheet, styles: _StyleCache) -> None:
    if sheet.default_row_height is not None:
        ws.sheet_format.defaultRowHeight = sheet.default_row_height
        ws.sheet_format.customHeight = True

    for col, width in sheet.column_widths.items():
        ws.column_dimensions[get_column_letter(col + 1)].width = width

    for row_idx, row in sheet.iter_rows():
        if row.height is not None:
            ws.row_dimensions[row_idx + 1].height = row.height
        for col, cell in row.items():
            xcell = ws.cell(row=row_idx + 1, column=col + 1)
            if cell.value is not None:
                xcell.value = _xlsx_value(cell.value)
            font, alignment, fill, border = styles.get(cell.style)
            xcell.font = font
            xcell.alignment = alignment
            if fill is not None:
                xcell.fill = fill
            if border is not None:
                xcell.border = border

    for m in sheet.merged_regions:
        ws.merge_cells(
            start_row=m.first_row + 1,
            end_row=m.last_row + 1,
            start_column=m.first_col + 1,
            end_column=m.last_col + 1,
        )

    for col in sorted(sheet.hidden_columns):
        ws.column_dimensions[get_column_letter(col + 1)].hidden = True


def temp_path_for(path: Path) -> Path:
    return path.with_name(f".{path.name}.tmp")


def write_workbook(workbook: Workbook, path: Path) -> Path:
    """Write ``workbook`` to ``path`` via a temporary sibling that is renamed into place.

    Raises:
        IOFailure: If the file cannot be written (the temporary file is removed)
    """
    xwb = XlsxWorkbook()
    xwb.remove(xwb.active)
    styles = _StyleCache()
    for sheet in workbook.sheets:
        _write_sheet(xwb.create_sheet(title=sheet.name), sheet, styles)

    tmp = temp_path_for(path)
    try:
        xwb.save(tmp)
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise IOFailure(f"cannot write {path.name}: {e}") from e
    logger.debug("wrote %s (%d sheets)", path, len(workbook.sheets))
    return path
