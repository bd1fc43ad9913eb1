from __future__ import annotations

import math
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError

from ..errors import IOFailure, MissingSheet
from .grid import CellStyle, Sheet

"""Source workbook reader.

The source sheet is read raw (no header row) with pandas and converted into the
grid model. Empty strings and NaN are treated as absent cells; a row whose
cells are all absent becomes a gap. The workbook handle is released when the
``with`` block exits, also on error.
"""

__all__ = [
    "read_source_sheet",
    "list_sheet_names",
]

# damaged workbooks surface as any of these depending on the engine
_OPEN_ERRORS = (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException, XLRDError)


def _engine_for(path: Path) -> str | None:
    # pandas picks openpyxl for .xlsx on its own; .xls needs xlrd
    return "xlrd" if path.suffix.lower() == ".xls" else None


def _normalize_value(val: Any) -> Any:
    """Convert a pandas cell value to a plain Python value (None = absent)."""
    if val is None:
        return None
    if isinstance(val, pd.Timestamp):
        if pd.isna(val):
            return None
        return val.to_pydatetime()
    if isinstance(val, np.generic):
        val = val.item()
    if isinstance(val, float) and math.isnan(val):
        return None
    if isinstance(val, str) and val == "":
        return None
    if isinstance(val, datetime):
        return val
    return val


def list_sheet_names(path: Path) -> list[str]:
    try:
        with pd.ExcelFile(path, engine=_engine_for(path)) as xls:
            return [str(n) for n in xls.sheet_names]
    except _OPEN_ERRORS as e:
        raise IOFailure(f"cannot open {path.name}: {e}") from e


def read_source_sheet(path: Path, sheet_name: str, style: CellStyle | None = None) -> Sheet:
    """Read ``sheet_name`` of the workbook at ``path`` into a Sheet.

    Args:
        path: Source .xlsx / .xls file
        sheet_name: Name of the sheet holding the measurement data
        style: Style assigned to every read cell (source styles are not carried)

    Returns:
        Sheet whose row i is the i-th spreadsheet row (0-based)

    Raises:
        MissingSheet: If the workbook has no sheet named ``sheet_name``
        IOFailure: If the file cannot be opened or parsed
    """
    cell_style = style or CellStyle()
    try:
        with pd.ExcelFile(path, engine=_engine_for(path)) as xls:
            names = [str(n) for n in xls.sheet_names]
            if sheet_name not in names:
                raise MissingSheet(sheet_name, path.name)
            df = xls.parse(sheet_name, header=None, keep_default_na=False)
    except MissingSheet:
        raise
    except _OPEN_ERRORS as e:
        raise IOFailure(f"cannot read {path.name}: {e}") from e

    sheet = Sheet(sheet_name)
    for row_idx, raw in enumerate(df.itertuples(index=False, name=None)):
        values = {col: _normalize_value(v) for col, v in enumerate(raw)}
        present = {col: v for col, v in values.items() if v is not None}
        if not present:
            continue
        row = sheet.ensure_row(row_idx)
        for col, v in present.items():
            row.set(col, v, cell_style)
    return sheet
