from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidRowIndex

"""In-memory grid model for one worksheet.

A Sheet is a position-indexed list of rows. Rows do not know their own index:
the position in ``Sheet._rows`` is the only index and it changes exclusively
through the mutator API (excel/mutator.py). Gaps are ``None`` entries and the
list never ends with a gap.

Styles are immutable values; a "style change" builds a new CellStyle with
``dataclasses.replace`` and assigns it to the cell.
"""

__all__ = [
    "CellKind",
    "CellStyle",
    "Formula",
    "Cell",
    "Row",
    "MergedRegion",
    "Sheet",
    "Workbook",
    "mm_to_points",
    "cm_to_width",
    "STANDARD_ROW_HEIGHT",
]


def mm_to_points(mm: float) -> float:
    """Convert millimetres to points (row height unit)."""
    return round(mm / 25.4 * 72, 2)


def cm_to_width(cm: float) -> float:
    """Convert centimetres to column width characters (4.5 chars per cm)."""
    return round(cm * 4.5, 2)


STANDARD_ROW_HEIGHT = mm_to_points(8.0)  # 8 mm data row


class CellKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    FORMULA = "formula"
    BLANK = "blank"


@dataclass(frozen=True)
class CellStyle:
    """Immutable cell style value."""
    font_name: str = "Calibri"
    font_size: float = 11
    bold: bool = False
    horizontal: str | None = None  # "left" / "center" / "right"
    vertical: str | None = None
    wrap: bool = False
    fill: str | None = None  # RGB hex, solid fill
    borders: bool = False  # thin border on all four sides

    def with_borders(self) -> CellStyle:
        return replace(self, borders=True)

    def with_wrap(self) -> CellStyle:
        return replace(self, wrap=True)


@dataclass(frozen=True)
class Formula:
    """Formula text plus the last cached result (None if never calculated)."""
    text: str
    cached: Any = None


@dataclass
class Cell:
    value: Any = None  # str | int | float | bool | date | datetime | Formula | None
    style: CellStyle = field(default_factory=CellStyle)

    @property
    def kind(self) -> CellKind:
        v = self.value
        if v is None or (isinstance(v, str) and v == ""):
            return CellKind.BLANK
        if isinstance(v, Formula):
            return CellKind.FORMULA
        if isinstance(v, bool):
            return CellKind.BOOLEAN
        if isinstance(v, str):
            return CellKind.TEXT
        return CellKind.NUMBER

    def copy(self) -> Cell:
        # CellStyle and Formula are immutable, sharing them is safe
        return Cell(value=self.value, style=self.style)


@dataclass
class Row:
    height: float | None = None  # points, None = sheet default
    cells: dict[int, Cell] = field(default_factory=dict)

    def get(self, column: int) -> Cell | None:
        return self.cells.get(column)

    def set(self, column: int, value: Any, style: CellStyle | None = None) -> Cell:
        """Create or overwrite the cell at ``column``; keeps the old style unless given."""
        if column < 0:
            raise ValueError(f"column index must be >= 0: {column}")
        cell = self.cells.get(column)
        if cell is None:
            cell = Cell(value=value, style=style or CellStyle())
            self.cells[column] = cell
        else:
            cell.value = value
            if style is not None:
                cell.style = style
        return cell

    def columns(self) -> list[int]:
        return sorted(self.cells)

    def items(self) -> list[tuple[int, Cell]]:
        return [(c, self.cells[c]) for c in sorted(self.cells)]


@dataclass(frozen=True)
class MergedRegion:
    """Rectangular span, all bounds inclusive and 0-based."""
    first_row: int
    last_row: int
    first_col: int
    last_col: int

    def __post_init__(self) -> None:
        if self.first_row < 0 or self.first_col < 0:
            raise ValueError(f"negative bound in merged region {self}")
        if self.last_row < self.first_row or self.last_col < self.first_col:
            raise ValueError(f"inverted merged region {self}")

    @property
    def is_single_cell(self) -> bool:
        return self.first_row == self.last_row and self.first_col == self.last_col

    def overlaps(self, other: MergedRegion) -> bool:
        return not (
            other.last_row < self.first_row
            or other.first_row > self.last_row
            or other.last_col < self.first_col
            or other.first_col > self.last_col
        )


class Sheet:
    """Ordered rows with gaps, merged regions, hidden columns and dimensions."""

    def __init__(self, name: str, default_row_height: float | None = None) -> None:
        self.name = name
        self.default_row_height = default_row_height
        self.column_widths: dict[int, float] = {}
        self.hidden_columns: set[int] = set()
        self.merged_regions: list[MergedRegion] = []
        self._rows: list[Row | None] = []

    def __repr__(self) -> str:  # pragma: no cover (debug helper)
        return f"Sheet(name={self.name!r}, rows={self.row_count}, merged={len(self.merged_regions)})"

    @property
    def last_row_index(self) -> int:
        """Index of the last row, -1 for an empty sheet."""
        return len(self._rows) - 1

    @property
    def row_count(self) -> int:
        """Number of occupied (non-gap) rows."""
        return sum(1 for r in self._rows if r is not None)

    def row(self, index: int) -> Row | None:
        if index < 0:
            raise InvalidRowIndex(index)
        if index >= len(self._rows):
            return None
        return self._rows[index]

    def ensure_row(self, index: int, height: float | None = None) -> Row:
        """Return the row at ``index``, creating it (and padding gaps) when absent."""
        if index < 0:
            raise InvalidRowIndex(index)
        while len(self._rows) <= index:
            self._rows.append(None)
        row = self._rows[index]
        if row is None:
            row = Row(height=height)
            self._rows[index] = row
        elif height is not None:
            row.height = height
        return row

    def iter_rows(self, start: int = 0) -> list[tuple[int, Row]]:
        """Snapshot of (index, row) pairs for occupied rows from ``start``."""
        return [(i, r) for i, r in enumerate(self._rows) if i >= start and r is not None]

    def cell(self, row: int, column: int) -> Cell | None:
        r = self.row(row)
        return r.get(column) if r is not None else None

    def set_value(self, row: int, column: int, value: Any, style: CellStyle | None = None) -> Cell:
        return self.ensure_row(row).set(column, value, style)

    def merge(self, first_row: int, last_row: int, first_col: int, last_col: int) -> MergedRegion:
        region = MergedRegion(first_row, last_row, first_col, last_col)
        for existing in self.merged_regions:
            if existing.overlaps(region):
                raise ValueError(f"merged region {region} overlaps {existing}")
        self.merged_regions.append(region)
        return region

    def hide_column(self, column: int) -> None:
        self.hidden_columns.add(column)

    def _trim(self) -> None:
        while self._rows and self._rows[-1] is None:
            self._rows.pop()


class Workbook:
    """Owns one or more sheets; created fresh per output file."""

    def __init__(self) -> None:
        self.sheets: list[Sheet] = []

    def create_sheet(self, name: str, default_row_height: float | None = None) -> Sheet:
        if any(s.name == name for s in self.sheets):
            raise ValueError(f"duplicate sheet name: {name}")
        sheet = Sheet(name, default_row_height=default_row_height)
        self.sheets.append(sheet)
        return sheet

    def get_sheet(self, name: str) -> Sheet | None:
        for s in self.sheets:
            if s.name == name:
                return s
        return None
