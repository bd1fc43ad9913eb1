from __future__ import annotations

from collections.abc import Iterable

from ..excel.cell_text import cell_text
from ..excel.grid import Sheet

"""Locate rows by the text of one column."""

__all__ = [
    "find_rows",
]


def find_rows(sheet: Sheet, column: int, target_texts: Iterable[str], start: int = 0) -> list[int]:
    """Return ascending indices of rows whose ``column`` text equals one of ``target_texts``.

    Comparison is exact and case-sensitive after stripping surrounding whitespace.
    Gaps and rows without a cell in ``column`` never match.
    """
    targets = set(target_texts)
    return [
        i for i, row in sheet.iter_rows(start)
        if cell_text(row.get(column)).strip() in targets
    ]
