from __future__ import annotations

from collections.abc import Iterable

from ..errors import InvalidRowIndex
from .grid import STANDARD_ROW_HEIGHT, MergedRegion, Row, Sheet

"""Structural row mutations on a Sheet.

insert_row / remove_row are the only operations that change row positions.
Both validate their arguments before touching the sheet, so a failed call
leaves the sheet unchanged. Callers must not cache row indices across a call.
"""

__all__ = [
    "insert_row",
    "remove_row",
    "copy_row",
]


def _shift_regions_for_insert(regions: list[MergedRegion], index: int) -> list[MergedRegion]:
    out: list[MergedRegion] = []
    for m in regions:
        if m.first_row >= index:
            out.append(MergedRegion(m.first_row + 1, m.last_row + 1, m.first_col, m.last_col))
        elif m.last_row >= index:
            # straddles the insertion point
            out.append(MergedRegion(m.first_row, m.last_row + 1, m.first_col, m.last_col))
        else:
            out.append(m)
    return out


def _shift_regions_for_remove(regions: list[MergedRegion], index: int) -> list[MergedRegion]:
    out: list[MergedRegion] = []
    for m in regions:
        if m.last_row < index:
            out.append(m)
        elif m.first_row > index:
            out.append(MergedRegion(m.first_row - 1, m.last_row - 1, m.first_col, m.last_col))
        elif m.first_row == m.last_row:
            continue  # region lived only on the removed row
        else:
            shrunk = MergedRegion(m.first_row, m.last_row - 1, m.first_col, m.last_col)
            if not shrunk.is_single_cell:
                out.append(shrunk)
    return out


def insert_row(sheet: Sheet, index: int, height: float | None = STANDARD_ROW_HEIGHT) -> Row:
    """Insert an empty row at ``index`` shifting rows at/after it down by one.

    Args:
        sheet: Target sheet
        index: Position of the new row; past the last row simply appends
        height: Row height in points (defaults to the standard 8 mm data row)

    Returns:
        The new empty Row now living at ``index``

    Raises:
        InvalidRowIndex: If index < 0
    """
    if index < 0:
        raise InvalidRowIndex(index)
    regions = _shift_regions_for_insert(sheet.merged_regions, index)

    rows = sheet._rows
    new_row = Row(height=height)
    if index >= len(rows):
        rows.extend([None] * (index - len(rows)))
        rows.append(new_row)
    else:
        rows.insert(index, new_row)
    sheet.merged_regions = regions
    return new_row


def remove_row(sheet: Sheet, index: int) -> Row | None:
    """Remove the row at ``index`` shifting later rows up by one.

    Removing the last row is a plain deletion. Trailing gaps are trimmed so that
    ``insert_row(s, i)`` followed by ``remove_row(s, i)`` restores the sheet.

    Returns:
        The removed Row (None when the position was a gap)

    Raises:
        InvalidRowIndex: If index < 0 or past the last row
    """
    if index < 0:
        raise InvalidRowIndex(index)
    if index > sheet.last_row_index:
        raise InvalidRowIndex(index, f"past last row {sheet.last_row_index}")
    regions = _shift_regions_for_remove(sheet.merged_regions, index)

    removed = sheet._rows.pop(index)
    sheet._trim()
    sheet.merged_regions = regions
    return removed


def copy_row(source: Row, target: Row, columns: Iterable[int] | None = None) -> int:
    """Copy value and style of each present source cell into the same column of target.

    Columns without a source cell are skipped (the target cell stays absent or
    untouched). The row height is copied as well.

    Returns:
        Number of cells copied
    """
    wanted = source.columns() if columns is None else [c for c in columns if c in source.cells]
    for col in wanted:
        target.cells[col] = source.cells[col].copy()
    target.height = source.height
    return len(wanted)
