from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from .file_category import FileCategory

"""Cross-file aggregation models and the calculation point ordering."""

__all__ = [
    "MeasurementKind",
    "PointObservation",
    "AggregatedPointRecord",
    "point_sort_key",
]

_NUMBER_RE = re.compile(r"(\d+)(.*)", re.DOTALL)


class MeasurementKind(Enum):
    LEVEL = "level"
    LIMIT = "limit"
    EXCESS = "excess"


@dataclass(frozen=True)
class PointObservation:
    """One classified value row of a source sheet."""
    point: str
    kind: MeasurementKind
    value: float | None  # column L, None when blank / non-numeric
    elevation: float | None  # only set on group-start rows
    group_start: bool  # row carries the point name and a level label


@dataclass
class AggregatedPointRecord:
    """All values collected for one calculation point across files."""
    name: str
    elevation: float | None = None
    values: dict[tuple[FileCategory, MeasurementKind], float] = field(default_factory=dict)

    def add(self, category: FileCategory, kind: MeasurementKind, value: float | None) -> None:
        if value is not None:
            self.values[(category, kind)] = value

    def categories(self) -> set[FileCategory]:
        return {c for c, _ in self.values}

    def preferred_value(self, category: FileCategory) -> float | None:
        """Value shown in the pivot cell: level, then limit, then excess."""
        for kind in (MeasurementKind.LEVEL, MeasurementKind.LIMIT, MeasurementKind.EXCESS):
            v = self.values.get((category, kind))
            if v is not None:
                return v
        return None


def point_sort_key(name: str) -> tuple[int, int, str]:
    """Order purely numeric point names first (numerically), then the rest lexically.

    ``PT-2`` < ``PT-10`` < ``PT-1a`` < ``PT-3b``.
    """
    digits = re.search(r"\d", name)
    if digits is None:
        return (1, 0, name)
    number, suffix = _NUMBER_RE.fullmatch(name[digits.start():]).groups()
    if suffix == "":
        return (0, int(number), name)
    return (1, 0, name)
