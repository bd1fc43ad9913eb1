from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

"""Batch run result models.

FileStat is the per-file line of a run; BatchResult aggregates them together
with the aggregate outputs (point list, summary table) and the terminal status.
"""


class RunStatus(Enum):
    COMPLETED = "completed"  # every selected file succeeded
    PARTIAL = "partial"  # at least one file failed
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success / failed / cancelled
    points: int  # annotated calculation points
    rows_affected: int  # rows touched by row operations
    elapsed_seconds: float
    output_name: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Totals of one batch run, consumed by the CLI and the worker's caller."""
    success_files: int
    failed_files: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    status: RunStatus = RunStatus.COMPLETED
    file_stats: list[FileStat] = field(default_factory=list)
    point_list_path: Path | None = None
    summary_table_path: Path | None = None
    aggregate_failures: list[str] = field(default_factory=list)  # e.g. "summary_table"

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED
