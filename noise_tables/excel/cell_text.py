from __future__ import annotations

import math
from datetime import date, datetime, time

from .grid import Cell, Formula

"""Typed cell -> text conversion shared by every component.

- blank / absent cell -> ""
- integral numbers render as integer strings (15.0 -> "15")
- dates render in their textual form
- formulas fall back to the cached result, then to the formula text
"""

__all__ = [
    "cell_text",
    "value_text",
    "numeric_value",
]


def value_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, Formula):
        if value.cached is not None:
            return value_text(value.cached)
        return value.text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value == math.floor(value):
            return str(int(value))
        return str(value)
    return str(value)


def cell_text(cell: Cell | None) -> str:
    """Return the string representation of a cell ("" when absent)."""
    if cell is None:
        return ""
    return value_text(cell.value)


def numeric_value(cell: Cell | None) -> float | None:
    """Return the numeric value of a cell, None for text / blank / boolean cells."""
    if cell is None:
        return None
    v = cell.value
    if isinstance(v, Formula):
        v = v.cached
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    f = float(v)
    if math.isnan(f):
        return None
    return f
