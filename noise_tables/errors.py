from __future__ import annotations

"""Error taxonomy for the noise table processor.

Propagation policy:
- row / point level errors (InvalidRowIndex, MalformedElevation) are caught by the
  operation that raised them, logged, and the loop continues
- file level errors (UnsupportedFile, MissingSheet, IOFailure) abort that file only
- InvalidPath aborts the whole run before any file is touched
"""

__all__ = [
    "ProcessingError",
    "InvalidPath",
    "UnsupportedFile",
    "MissingSheet",
    "InvalidRowIndex",
    "MalformedElevation",
    "IOFailure",
    "BatchCancelled",
]


class ProcessingError(Exception):
    """Base exception for processing errors."""

    error_type = "PROCESSING_ERROR"


class InvalidPath(ProcessingError):
    """Input directory is missing or is not a directory."""

    error_type = "INVALID_PATH"


class UnsupportedFile(ProcessingError):
    """File name matches no known file category."""

    error_type = "UNSUPPORTED_FILE"


class MissingSheet(ProcessingError):
    """Expected source sheet is absent from the workbook."""

    error_type = "MISSING_SHEET"

    def __init__(self, sheet_name: str, file_name: str) -> None:
        super().__init__(f"sheet '{sheet_name}' not found in {file_name}")
        self.sheet_name = sheet_name
        self.file_name = file_name


class InvalidRowIndex(ProcessingError):
    """Row index violates a mutator precondition."""

    error_type = "INVALID_ROW_INDEX"

    def __init__(self, index: int, reason: str = "row index must be >= 0") -> None:
        super().__init__(f"invalid row index {index}: {reason}")
        self.index = index


class MalformedElevation(ProcessingError):
    """Coordinate string carries no parseable elevation."""

    error_type = "MALFORMED_ELEVATION"


class IOFailure(ProcessingError):
    """Workbook could not be read or written."""

    error_type = "IO_FAILURE"


class BatchCancelled(ProcessingError):
    """Cooperative cancellation was requested by the caller."""

    error_type = "CANCELLED"
