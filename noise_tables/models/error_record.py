from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the skipped-file log.

One record per skipped file (or per skipped row when the row is known). ``row``
is 1-based; -1 marks file-level errors where no row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Workbook file name
        sheet: Sheet name ("" when the sheet was never reached)
        row: Row number (1-based), -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_exception(file: str, sheet: str, exc: Exception, row: int = -1) -> ErrorRecord:
        error_type = getattr(exc, "error_type", "UNEXPECTED_ERROR")
        return ErrorRecord.create(file, sheet, row, error_type, str(exc))

    def to_json_line(self) -> str:
        """Serialize to one JSON line (exactly the dataclass fields)."""
        return json.dumps(asdict(self), ensure_ascii=False)
