from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .file_category import FileCategory
from .labels import DEFAULT_LABELS, MarkerLabels

"""Run configuration dataclasses.

These are the typed form of the YAML run file (config/loader.py builds them)
and of the flags a caller hands to the batch runner.
"""


class SummaryShape(Enum):
    PIVOT = "pivot"  # one row per point, one column per category
    BLOCK = "block"  # three rows per source file, one column per point


@dataclass(frozen=True)
class OperationsConfig:
    """Optional row operations applied to every output sheet."""
    remove_required_isolation: bool = False
    move_barrier_isolation: bool = False
    correction_value: float | None = None  # None / 0 disables the correction rows

    @property
    def apply_correction(self) -> bool:
        return self.correction_value is not None and self.correction_value != 0


@dataclass(frozen=True)
class OutputsConfig:
    point_list: bool = False
    summary_table: bool = False
    summary_shape: SummaryShape = SummaryShape.PIVOT


@dataclass(frozen=True)
class RunConfig:
    """Root configuration of one batch run."""
    source_directory: str | None = None
    operations: OperationsConfig = field(default_factory=OperationsConfig)
    outputs: OutputsConfig = field(default_factory=OutputsConfig)
    categories: tuple[FileCategory, ...] = tuple(FileCategory)  # selected input kinds
    labels: MarkerLabels = DEFAULT_LABELS
    barrier_offset: int = 3  # rows a barrier isolation row moves up

    def is_selected(self, category: FileCategory) -> bool:
        return category in self.categories
