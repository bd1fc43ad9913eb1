from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .file_category import FileCategory

"""ExcelFile processing context and FileStatus enum.

Every processed file ends in exactly one of success, failed or cancelled.
"""


class FileStatus(Enum):
    """Status of one source file within a batch run.

    - SUCCESS: Output written
    - FAILED: Pipeline aborted for this file, nothing written
    - CANCELLED: Run cancelled while this file was in progress, nothing written
    """
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExcelFile:
    """Processing context for a single source workbook."""
    path: Path                                # Source file
    name: str                                 # File name
    status: FileStatus
    category: FileCategory | None = None      # Resolved category (None when unsupported)
    output_path: Path | None = None           # Written output (success only)
    start_time: datetime | None = None        # Processing start (UTC)
    end_time: datetime | None = None          # Processing end (UTC)
    points: int = 0                           # Annotated calculation points
    rows_affected: int = 0                    # Rows touched by configured row operations
    error: str | None = None                  # Failure reason summary
