from __future__ import annotations

import logging
from threading import Event

from ..errors import BatchCancelled, ProcessingError
from ..excel.cell_text import cell_text, numeric_value
from ..excel.grid import Row, Sheet
from ..excel.mutator import copy_row, insert_row, remove_row
from ..models.columns import HEADER_ROWS, HIDDEN_BAND_COL, MARKER_COL, NAME_COL, TABLE_COLUMNS, VALUE_COLUMNS
from ..models.labels import DEFAULT_LABELS, MarkerLabels
from .layout import BASE_STYLE
from .row_matcher import find_rows

"""Row-level transformations applied to a laid-out output sheet.

Every operation computes all target rows up front and then processes them from
the highest index down, so shifts caused by one row never invalidate the
indices of rows still waiting. A failure on one row is logged and counted and
the loop moves on. The optional cancel event is checked before every row.
"""

__all__ = [
    "RowOperation",
    "RequiredIsolationRemover",
    "BarrierRowRelocator",
    "CorrectionApplier",
    "EmptyRowCleaner",
    "check_cancelled",
]

logger = logging.getLogger(__name__)


def check_cancelled(cancel: Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise BatchCancelled("processing cancelled")


class RowOperation:
    """Base class: ``find_targets`` once, then ``apply`` per row, highest index first."""

    name = "row operation"

    def __init__(self, labels: MarkerLabels = DEFAULT_LABELS, header_rows: int = HEADER_ROWS) -> None:
        self.labels = labels
        self.header_rows = header_rows
        self.failures = 0

    def find_targets(self, sheet: Sheet) -> list[int]:
        raise NotImplementedError

    def apply(self, sheet: Sheet, index: int) -> bool:
        raise NotImplementedError

    def execute(self, sheet: Sheet, cancel: Event | None = None) -> int:
        """Run the operation on ``sheet``.

        Returns:
            Number of rows affected

        Raises:
            BatchCancelled: If ``cancel`` is set before a row is processed
        """
        targets = sorted(set(self.find_targets(sheet)), reverse=True)
        if not targets:
            logger.debug("%s: no matching rows", self.name)
            return 0
        affected = 0
        for index in targets:
            check_cancelled(cancel)
            try:
                if self.apply(sheet, index):
                    affected += 1
            except (ProcessingError, ValueError) as e:
                self.failures += 1
                logger.error("%s: row %d skipped: %s", self.name, index + 1, e)
        logger.info("%s: %d of %d rows", self.name, affected, len(targets))
        return affected


class RequiredIsolationRemover(RowOperation):
    """Delete every row marked as required isolation."""

    name = "remove required isolation rows"

    def find_targets(self, sheet: Sheet) -> list[int]:
        return find_rows(sheet, MARKER_COL, [self.labels.required_isolation], self.header_rows)

    def apply(self, sheet: Sheet, index: int) -> bool:
        remove_row(sheet, index)
        logger.debug("removed row %d", index + 1)
        return True


class BarrierRowRelocator(RowOperation):
    """Move each barrier isolation row ``offset`` rows up within its point block.

    Only a barrier row that closes its block is moved: no row between it and
    the next point name carries marker text. A moved row has the rows it
    jumped over below it, so a second run leaves it in place.

    A move is also skipped when the target would land in the header, or when it
    would cross the start of the row's point block (a row whose column A holds a
    point name lies in ``[target, source)``).
    """

    name = "move barrier isolation rows"

    def __init__(
        self,
        labels: MarkerLabels = DEFAULT_LABELS,
        header_rows: int = HEADER_ROWS,
        offset: int = 3,
    ) -> None:
        super().__init__(labels, header_rows)
        self.offset = offset

    def _crosses_block_start(self, sheet: Sheet, target: int, source: int) -> bool:
        for i in range(target, source):
            if self.labels.is_point_name(cell_text(sheet.cell(i, NAME_COL)).strip()):
                return True
        return False

    def _closes_block(self, sheet: Sheet, source: int) -> bool:
        for i in range(source + 1, sheet.last_row_index + 1):
            if self.labels.is_point_name(cell_text(sheet.cell(i, NAME_COL)).strip()):
                return True
            if cell_text(sheet.cell(i, MARKER_COL)).strip():
                return False
        return True

    def find_targets(self, sheet: Sheet) -> list[int]:
        sources = find_rows(sheet, MARKER_COL, [self.labels.barrier_isolation], self.header_rows)
        accepted = []
        for source in sources:
            target = source - self.offset
            if not self._closes_block(sheet, source):
                logger.debug("row %d not moved: already inside its point block", source + 1)
            elif target < self.header_rows:
                logger.debug("row %d not moved: target inside header", source + 1)
            elif self._crosses_block_start(sheet, target, source):
                logger.debug("row %d not moved: target outside its point block", source + 1)
            else:
                accepted.append(source)
        return accepted

    def apply(self, sheet: Sheet, index: int) -> bool:
        source_row = sheet.row(index)
        if source_row is None:
            return False
        saved = Row()
        copy_row(source_row, saved)
        target = index - self.offset
        new_row = insert_row(sheet, target)
        copy_row(saved, new_row)
        remove_row(sheet, index + 1)
        logger.debug("moved row %d -> %d", index + 1, target + 1)
        return True


class CorrectionApplier(RowOperation):
    """Insert a correction row above each excess row and add the delta to its values.

    Absent or non-numeric value cells count as 0.0.
    """

    name = "apply position correction"

    def __init__(
        self,
        delta: float,
        labels: MarkerLabels = DEFAULT_LABELS,
        header_rows: int = HEADER_ROWS,
        columns: range = VALUE_COLUMNS,
    ) -> None:
        super().__init__(labels, header_rows)
        self.delta = delta
        self.columns = columns

    def find_targets(self, sheet: Sheet) -> list[int]:
        return find_rows(sheet, MARKER_COL, self.labels.excess, self.header_rows)

    def apply(self, sheet: Sheet, index: int) -> bool:
        row = sheet.row(index)
        if row is None:
            logger.warning("correction target row %d is empty", index + 1)
            return False
        originals = {col: numeric_value(row.get(col)) or 0.0 for col in self.columns}

        correction = insert_row(sheet, index)
        correction.set(MARKER_COL, self.labels.correction, BASE_STYLE)
        for col in self.columns:
            correction.set(col, self.delta, BASE_STYLE)
            row.set(col, originals[col] + self.delta, BASE_STYLE)
        return True


class EmptyRowCleaner(RowOperation):
    """Remove every row below the header without text in the table columns."""

    name = "remove empty rows"

    def __init__(
        self,
        labels: MarkerLabels = DEFAULT_LABELS,
        header_rows: int = HEADER_ROWS,
        columns: range = TABLE_COLUMNS,
        skip: int = HIDDEN_BAND_COL,
    ) -> None:
        super().__init__(labels, header_rows)
        self.columns = columns
        self.skip = skip

    def _is_empty(self, row: Row | None) -> bool:
        if row is None:
            return True
        return not any(
            cell_text(row.get(col)).strip() for col in self.columns if col != self.skip
        )

    def find_targets(self, sheet: Sheet) -> list[int]:
        return [
            i for i in range(self.header_rows, sheet.last_row_index + 1)
            if self._is_empty(sheet.row(i))
        ]

    def apply(self, sheet: Sheet, index: int) -> bool:
        remove_row(sheet, index)
        return True
